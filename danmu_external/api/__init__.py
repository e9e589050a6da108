from fastapi import APIRouter

from .danmu_api import router as danmu_router

# 所有挂载在 /api 前缀下的路由
api_router = APIRouter()

api_router.include_router(danmu_router, tags=["Danmu"])
