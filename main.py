from database import Base, engine
from dependencies import lifespan
from errors import InvalidInputError, RankingError
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from logger import configure_logging, get_logger
import models  # noqa: F401  registers tables on Base.metadata
from routes import admin, daily, leaderboard
from sqlalchemy.exc import SQLAlchemyError
import config

configure_logging()
logger = get_logger(__name__)

# Ensure DB tables are created
try:
    Base.metadata.create_all(bind=engine)
except SQLAlchemyError:
    logger.error("Error creating database tables", exc_info=True)

app = FastAPI(title="LeetRank", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RankingError)
async def ranking_error_handler(request: Request, exc: RankingError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = InvalidInputError(
        "Invalid request parameters",
        {"errors": [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg")} for e in exc.errors()
        ]},
    )
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.get("/")
async def root():
    return {"message": "Welcome to the LeetRank ranking service!"}


app.include_router(leaderboard.router)
app.include_router(daily.router)
app.include_router(admin.router)
