from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator


class GenerationRequest(BaseModel):
    model_config = {"extra": "ignore", "str_strip_whitespace": True}
    photo: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("photo", "userPhoto"),
        description="Base64 photo, optionally a data URI",
    )
    style: str = Field(..., min_length=1, description="Style catalog key")


class GeneratedImage(BaseModel):
    mime_type: str = Field(default="image/png")
    data: str = Field(..., description="Base64 image payload")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class GenerationFailure(BaseModel):
    code: str
    message: str
    status_code: int = 500
    details: Optional[Any] = None
    upstream_code: Optional[Any] = None

    def to_body(self) -> dict:
        body: dict = {"error": self.message, "code": self.code}
        if self.upstream_code is not None:
            body["upstream_code"] = self.upstream_code
        if self.details is not None:
            body["details"] = self.details
        return body


class GenerationResult(BaseModel):
    """Outcome of one gateway call: an image or a failure, never both."""

    image: Optional[GeneratedImage] = None
    failure: Optional[GenerationFailure] = None

    @model_validator(mode="after")
    def _exactly_one(self) -> "GenerationResult":
        if (self.image is None) == (self.failure is None):
            raise ValueError("exactly one of image or failure must be set")
        return self

    @property
    def success(self) -> bool:
        return self.image is not None


class GenerateResponse(BaseModel):
    success: bool = True
    image: str = Field(..., description="Generated image as a data URI")
