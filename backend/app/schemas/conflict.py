from typing import List, Literal, Optional

from pydantic import BaseModel


class ConflictDetail(BaseModel):
    type: Literal["teacher", "venue"]
    message: str
    lecture_id: Optional[str] = None


class ConflictReport(BaseModel):
    has_conflicts: bool
    conflicts: List[Literal["teacher", "venue"]]
    details: List[ConflictDetail]
    message: Optional[str] = None
