"""
Nutrition Advisor Backend - FastAPI Application
Main entry point for the nutrition advisor API
"""

import logging
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import CORS_ORIGINS
from advisor.advice import ChatSession, get_daily_recipe, get_daily_tips
from advisor.llm import CompletionClient, ConfigurationError
from advisor.log import setup_logging
from advisor.lookup import FoodNotFoundError, lookup_food
from advisor.models import ChatMessage
from advisor.rate_limiter import RateLimiter
from advisor.usda import USDAFoodData


logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Nutrition Advisor API",
    description="Nutrition tips, recipes, chat and food lookup backed by an LLM and USDA FoodData Central",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# One limiter per process, shared by every completion client
rate_limiter = RateLimiter()
nutrition_database = USDAFoodData()


def get_completion_client() -> Optional[CompletionClient]:
    """Completion client bound to the shared limiter, or None without an API key"""
    try:
        return CompletionClient(rate_limiter)
    except ConfigurationError:
        return None


def get_nutrition_database() -> USDAFoodData:
    return nutrition_database


# Request/Response Models
class ChatHistoryMessage(BaseModel):
    id: int
    content: str
    isUser: bool = False


class ChatRequest(BaseModel):
    message: str
    history: list[ChatHistoryMessage] = []


class FoodNutritionRequest(BaseModel):
    foodName: str


# API Endpoints
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Nutrition Advisor API is running",
        "version": "1.0.0",
        "rate_limit_remaining": rate_limiter.remaining
    }


@app.get("/health")
async def health_check(client: Optional[CompletionClient] = Depends(get_completion_client)):
    """Health check endpoint"""
    return {
        "status": "healthy" if client else "degraded",
        "llm_configured": client is not None,
        "rate_limit_remaining": rate_limiter.remaining
    }


@app.get("/tips")
async def daily_tips(client: Optional[CompletionClient] = Depends(get_completion_client)):
    """Today's nutrition tips"""
    tips = await get_daily_tips(client)
    return {"tips": [tip.to_dict() for tip in tips]}


@app.get("/recipe/daily")
async def daily_recipe(client: Optional[CompletionClient] = Depends(get_completion_client)):
    """Recipe of the day"""
    recipe = await get_daily_recipe(client)
    return recipe.to_dict()


@app.post("/chat")
async def chat(
    request: ChatRequest,
    client: Optional[CompletionClient] = Depends(get_completion_client)
):
    """Nutritionist chat: returns the user's message and the reply"""
    history = [ChatMessage(id=m.id, content=m.content, is_user=m.isUser) for m in request.history]
    session = ChatSession(history or None)
    new_messages = await session.submit(client, request.message)
    return {"messages": [m.to_dict() for m in new_messages]}


@app.post("/api/food-nutrition")
async def food_nutrition(
    request: FoodNutritionRequest,
    client: Optional[CompletionClient] = Depends(get_completion_client),
    database: USDAFoodData = Depends(get_nutrition_database)
):
    """Nutrient facts for a food name"""
    try:
        result = await lookup_food(request.foodName, database, client)
    except FoodNotFoundError as e:
        logger.info("Food not found: %s", e)
        return JSONResponse(status_code=404, content={"message": str(e)})
    except Exception as e:
        logger.exception("Food nutrition lookup failed")
        return JSONResponse(status_code=500, content={"message": "服务器错误", "error": str(e)})
    return result.to_dict()


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    setup_logging()
    if get_completion_client() is None:
        logger.error("SILICONFLOW_API_KEY is not set; LLM features will serve fallback content")
    logger.info("Nutrition Advisor backend started")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
