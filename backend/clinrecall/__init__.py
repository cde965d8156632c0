from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinrecall.config import settings
from clinrecall.db import init_all_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    yield


def create_app() -> FastAPI:
    application = FastAPI(
        title="ClinRecall Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from clinrecall.routers import ai, cases, flashcards, health, setup, speech, study

    application.include_router(health.router)
    application.include_router(
        cases.router, prefix="/cases", tags=["cases"]
    )
    application.include_router(
        flashcards.router, prefix="/flashcards", tags=["flashcards"]
    )
    application.include_router(
        study.router, prefix="/study", tags=["study"]
    )
    application.include_router(
        ai.router, prefix="/ai", tags=["ai"]
    )
    application.include_router(speech.router, tags=["speech"])
    application.include_router(
        setup.router, prefix="/settings", tags=["settings"]
    )

    return application


app = create_app()
