from pydantic import BaseModel


class Student(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None


class HealthError(BaseModel):
    status: str = "ERROR"
    message: str


class ErrorMessage(BaseModel):
    error: str
