from pydantic import BaseModel, Field


class TokenCreate(BaseModel):
    ttl_minutes: int | None = Field(None, ge=1)


class TokenIssued(BaseModel):
    token: str
    expires_at: str
    access_url: str


class TokenValidation(BaseModel):
    valid: bool
    patient_id: str | None = None
    expires_at: str | None = None
    used_by: str | None = None
