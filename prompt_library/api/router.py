"""Main API router — aggregates all endpoint modules."""

from fastapi import APIRouter

from prompt_library.api.notes import router as notes_router
from prompt_library.api.prompts import router as prompts_router
from prompt_library.api.transfer import router as transfer_router

api_router = APIRouter()

api_router.include_router(prompts_router, prefix="/prompts", tags=["prompts"])
api_router.include_router(notes_router, prefix="/prompts", tags=["notes"])
api_router.include_router(transfer_router, tags=["transfer"])
