from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


class RunConfig(BaseModel):
    """Everything a run needs. Times are in milliseconds."""

    input_file: str
    prefix: str = ""
    limit: int = Field(1000, ge=0)
    chunk_size: int = Field(1000, gt=0)
    time_range: int = Field(1000, ge=0)  # pacing window per chunk
    min_distance: int = Field(0, ge=0)  # floor between two submissions
    timeout: int = Field(1000, gt=0)
    sequential: bool = False
    no_body: bool = False
    method: Literal["GET", "POST"] = "GET"
    payload_file: Optional[str] = None
    repeat_payload: bool = False
    success_code: int = 200
    output: str = "response"  # "stdout" for standard output
    response_time_output: str = "response_time"  # "" disables the export

    @model_validator(mode="after")
    def _post_needs_payload(self) -> "RunConfig":
        if self.method == "POST" and not self.payload_file:
            raise ValueError("POST requires a payload_file")
        return self
