import sys

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from config import LOG_LEVEL, SHARE_BASE_URL
from routers import chart_router, dataset_router, formula_router, relationship_router, share_router

# Import DB init function and the tables it creates
from database import Base, engine
from models import dataset_db_model  # noqa: F401
from services.share_service import ShareLinkStore

logger.remove()
logger.add(sys.stderr, level=LOG_LEVEL)


def create_db():
    Base.metadata.create_all(bind=engine)


app = FastAPI(
    title="Multi-Dataset Relationship & Chart Backend",
    description="Backend API for relating tabular datasets and turning them into chart series.",
    version="0.2.0",
)
app.state.share_store = ShareLinkStore(SHARE_BASE_URL)


# Run create_db() once when app starts
@app.on_event("startup")
def on_startup():
    logger.info("Initializing database...")
    create_db()
    logger.info("Database initialized.")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(dataset_router.router)
app.include_router(relationship_router.router)
app.include_router(chart_router.router)
app.include_router(formula_router.router)
app.include_router(share_router.router)


@app.get("/")
async def root():
    return {"message": "Dataset relationship API is running"}
