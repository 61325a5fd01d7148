"""
# FastAPI entry-point
# This is the main application file that sets up the FastAPI server and middleware
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ad_pilot.core.config import get_settings
from ad_pilot.routers import chat, flow

settings = get_settings()

# Set up logging
logging.basicConfig(
    level=settings.log_level,
    format='%(message)s'  # Only show the message without timestamp and level
)

app = FastAPI(title="Ad Pilot Chat")

# Configure CORS (Cross-Origin Resource Sharing) middleware
# This allows the chat frontend to call the backend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router)
app.include_router(flow.router)


@app.get("/health")
async def health():
    return {"status": "ok", "catalog": settings.tool_catalog}
