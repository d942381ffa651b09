"""FastAPI application for the ETL Fixer log analysis assistant"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from contextlib import asynccontextmanager
import logging

# Initialize logging first
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from database import test_connection, Base, engine
# Import all models to ensure they are registered with SQLAlchemy
import models  # noqa: F401
from api import auth_router, analysis_router, history_router, admin_router

def create_tables():
    """Create the profiles and error_history tables when they are missing"""
    from sqlalchemy import inspect
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()

    required_tables = ['profiles', 'error_history']
    missing_tables = [t for t in required_tables if t not in existing_tables]

    if missing_tables:
        logger.warning(f"Missing tables detected: {missing_tables}")
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Created missing tables")
    else:
        logger.info("All required tables already exist - skipping creation")

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if test_connection():
        logger.info("Database connection successful")
        create_tables()
        logger.info("Application started successfully")
    else:
        logger.error("Database connection failed")
        raise Exception("Database connection failed")

    yield

# Initialize FastAPI
app = FastAPI(
    title="ETL Fixer API",
    description="ETL error log analysis with per-user deduplicated history",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "authentication",
            "description": "Sign-up, sign-in and client sessions"
        },
        {
            "name": "analysis",
            "description": "Log analysis and tool catalogue"
        },
        {
            "name": "history",
            "description": "Per-user error history"
        },
        {
            "name": "admin",
            "description": "Administrator overview"
        }
    ]
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global OPTIONS handler
@app.options("/{path:path}")
async def options_handler(request: Request, path: str):
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
            "Access-Control-Allow-Headers": "*",
        }
    )

# Include routers
app.include_router(auth_router)
app.include_router(analysis_router)
app.include_router(history_router)
app.include_router(admin_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
