from fastapi import APIRouter
from ledger_assistant.api.endpoints import auth, users, chat

api_router = APIRouter()

# Combine all sub-routers into one
api_router.include_router(users.router)
api_router.include_router(auth.router)
api_router.include_router(chat.router)
