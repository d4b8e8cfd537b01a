from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from infra.database.connection import init_db, close_db
from api.routers import library

from config import settings

# Lifespan event to handle startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()  # DBに接続できなければ起動を中止する
    yield
    close_db()

app = FastAPI(title="Songs Catalog API", version=settings.API_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_origin_regex=settings.CORS_ORIGIN_REGEX,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
    max_age=20,
)

# Root endpoint for health check
@app.get("/")
async def root():
    return {"message": "Songs Catalog API is running"}

# Include Routers
app.include_router(library.router, prefix=settings.api_prefix)
