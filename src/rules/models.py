from pydantic import BaseModel, Field, field_validator

from src.domain.font_files import DEFAULT_FONT_EXTENSIONS, MAX_FONT_FILE_BYTES


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class ApiRules(BaseModel):
    base_url: str = "http://127.0.0.1:8000/api/v1/admin"
    timeout_seconds: float = Field(default=30.0, gt=0)


class FontsRules(BaseModel):
    accepted_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_FONT_EXTENSIONS))
    poll_interval_ms: int = Field(default=2000, ge=0)
    upload_concurrency: int = Field(default=1, ge=1)
    delete_concurrency: int = Field(default=1, ge=1)
    max_font_file_bytes: int = Field(default=MAX_FONT_FILE_BYTES, gt=0)
    restart_notice: str = (
        "All Document Server nodes need to be restarted to pick up the changes."
    )

    @field_validator("accepted_extensions")
    @classmethod
    def _normalize_extensions(cls, value: list[str]) -> list[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext.startswith("."):
                ext = "." + ext
            normalized.append(ext)
        if not normalized:
            raise ValueError("accepted_extensions must not be empty")
        return normalized

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000


class Rules(BaseModel):
    project: ProjectRules
    api: ApiRules = Field(default_factory=ApiRules)
    fonts: FontsRules = Field(default_factory=FontsRules)
