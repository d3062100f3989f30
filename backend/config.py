"""
Nutrition Advisor Backend Configuration
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# SiliconFlow Configuration
SILICONFLOW_API_KEY = os.getenv("SILICONFLOW_API_KEY", "")
SILICONFLOW_BASE_URL = os.getenv(
    "SILICONFLOW_BASE_URL", "https://api.siliconflow.cn/v1/chat/completions"
)
LLM_MODEL = os.getenv("LLM_MODEL", "Qwen/Qwen2.5-7B-Instruct")

# LLM Settings
LLM_TEMPERATURE = 0.7
LLM_MAX_TOKENS = 2000
LLM_TOKEN_LIMIT = 45000     # prompt + completion budget per request, below the provider quota
LLM_TIMEOUT = 30
LLM_MAX_RETRIES = 3

# Rate limiting (provider quota is 1000 RPM)
RATE_LIMIT_PER_MINUTE = int(os.getenv("RATE_LIMIT_PER_MINUTE", "900"))
RATE_LIMIT_MIN_INTERVAL = 0.06  # seconds between requests

# USDA FoodData Central Configuration
USDA_API_KEY = os.getenv("USDA_API_KEY", "DEMO_KEY")
USDA_BASE_URL = "https://api.nal.usda.gov/fdc/v1"
USDA_TIMEOUT = 30

# Food lookup settings
FOOD_CHOICE_CANDIDATES = 5

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS - Frontend URLs
CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    os.getenv("FRONTEND_URL", ""),  # Production frontend URL
]
# Filter empty strings
CORS_ORIGINS = [origin for origin in CORS_ORIGINS if origin]
