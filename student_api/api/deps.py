from typing import Annotated

from fastapi import Depends, Request

from student_api.core.pool import PoolManager


def get_pool_manager(request: Request) -> PoolManager:
    """The PoolManager built in the app lifespan."""
    return request.app.state.pool_manager


PoolDep = Annotated[PoolManager, Depends(get_pool_manager)]
