# app/models/reports.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional, Union

RowStatus = Literal["success", "skipped", "error"]


class ImportResult(BaseModel):
    """Outcome of a single imported row"""
    row: int
    status: RowStatus
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ImportReport(BaseModel):
    success: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[ImportResult] = Field(default_factory=list)

    def add(self, result: ImportResult) -> None:
        """Append a row outcome and bump the matching counter"""
        if result.status == "success":
            self.success += 1
        elif result.status == "skipped":
            self.skipped += 1
        else:
            self.failed += 1
        self.details.append(result)

    @property
    def total(self) -> int:
        return self.success + self.skipped + self.failed


class BatchResult(BaseModel):
    id: Union[int, str]
    status: Literal["success", "error"]
    message: str = ""


class BatchReport(BaseModel):
    success: int = 0
    failed: int = 0
    details: List[BatchResult] = Field(default_factory=list)

    def add(self, result: BatchResult) -> None:
        if result.status == "success":
            self.success += 1
        else:
            self.failed += 1
        self.details.append(result)


class ImportRequest(BaseModel):
    data: Optional[Any] = None


class BatchUpdateRequest(BaseModel):
    ids: List[Union[int, str]] = Field(default_factory=list)
    data: Dict[str, Any] = Field(default_factory=dict)


class BatchDeleteRequest(BaseModel):
    ids: List[Union[int, str]] = Field(default_factory=list)
