from __future__ import annotations

from datetime import date
from typing import Literal, get_args

from pydantic import BaseModel, field_validator
from pydantic_core import PydanticCustomError

Category = Literal["scholarship", "graduate_school", "conference", "internship", "job", "other"]
Status = Literal["pending", "submitted", "interview", "offered", "rejected"]

CATEGORIES: tuple[str, ...] = get_args(Category)
STATUSES: tuple[str, ...] = get_args(Status)

CATEGORY_LABELS: dict[str, str] = {
    "scholarship": "Scholarship",
    "graduate_school": "Graduate School",
    "conference": "Conference",
    "internship": "Internship",
    "job": "Job",
    "other": "Other",
}

STATUS_LABELS: dict[str, str] = {
    "pending": "Pending",
    "submitted": "Submitted",
    "interview": "Interview",
    "offered": "Offered",
    "rejected": "Rejected",
}


class Credentials(BaseModel):
    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        return str(v or "").strip().lower()


class OpportunityCreate(BaseModel):
    title: str
    description: str = ""
    category: Category
    deadline: date

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v:
            # A blank title counts as not supplied.
            raise PydanticCustomError("missing", "Field required")
        return v


class OpportunityUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    category: Category | None = None
    deadline: date | None = None
    status: Status | None = None

    @field_validator("title")
    @classmethod
    def _strip_title(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = str(v).strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    def patch(self) -> dict[str, object]:
        """Fields explicitly provided by the caller, deadline rendered as ISO date."""
        out = self.model_dump(exclude_unset=True, exclude_none=True)
        if isinstance(out.get("deadline"), date):
            out["deadline"] = out["deadline"].isoformat()
        return out
