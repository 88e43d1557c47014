from fastapi import APIRouter

from student_api.api.routes import health, students

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(students.router)
