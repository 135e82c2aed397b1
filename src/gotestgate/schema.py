from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

# Field names mirror the Go toolchain's JSON encoding (`go list -json`,
# `go test -json`), which is why they are capitalized.


class GoListErrorDTO(BaseModel):
    ImportStack: List[str] = []
    Pos: str = ""
    Err: str = ""


class GoListPackageDTO(BaseModel):
    ImportPath: str
    Name: str = ""
    Dir: str = ""
    GoFiles: List[str] = []
    CgoFiles: List[str] = []
    TestGoFiles: List[str] = []
    XTestGoFiles: List[str] = []
    Imports: List[str] = []
    DepOnly: bool = False
    ForTest: str = ""
    Standard: bool = False
    Error: Optional[GoListErrorDTO] = None
    DepsErrors: List[GoListErrorDTO] = []


class GoTestEvent(BaseModel):
    Action: str
    Package: str = ""
    Test: str = ""
    Output: str = ""
    Elapsed: Optional[float] = None
    Time: Optional[str] = None
    ImportPath: str = ""
