"""
API tests for the FastAPI application
"""
import pytest
from fastapi.testclient import TestClient

from advisor.llm import ProviderError
from advisor.usda import NutritionDatabaseError
from main import app, get_completion_client, get_nutrition_database
from test_lookup import APPLE_SEARCH, FakeCompletionClient, FakeDatabase


@pytest.fixture
def override():
    def apply(client=None, database=None):
        app.dependency_overrides[get_completion_client] = lambda: client
        if database is not None:
            app.dependency_overrides[get_nutrition_database] = lambda: database
        return TestClient(app)

    yield apply
    app.dependency_overrides.clear()


def test_root(override):
    response = override().get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Nutrition Advisor API is running"


def test_health_reports_missing_llm(override):
    response = override(client=None).get("/health")
    assert response.json()["status"] == "degraded"
    assert response.json()["llm_configured"] is False


def test_tips(override):
    api = override(client=FakeCompletionClient(replies=["**多吃水果**：每天两份。"]))
    response = api.get("/tips")
    assert response.status_code == 200
    assert response.json() == {"tips": [{"title": "多吃水果", "content": "每天两份。", "emoji": "🍎"}]}


def test_daily_recipe_default_on_failure(override):
    api = override(client=FakeCompletionClient(error=ProviderError(500, "Unknown error")))
    response = api.get("/recipe/daily")
    assert response.status_code == 200
    assert response.json()["title"] == "五彩时蔬炒菜"


def test_chat(override):
    api = override(client=FakeCompletionClient(replies=["适量摄入蛋白质。"]))
    response = api.post("/chat", json={
        "message": "健身吃什么？",
        "history": [{"id": 1, "content": "你好！", "isUser": False}],
    })
    assert response.status_code == 200
    assert response.json() == {"messages": [
        {"id": 2, "content": "健身吃什么？", "isUser": True},
        {"id": 3, "content": "适量摄入蛋白质。", "isUser": False},
    ]}


def test_food_nutrition_fallback(override):
    api = override(
        client=FakeCompletionClient(error=ProviderError(401, "invalid key")),
        database=FakeDatabase(foods=APPLE_SEARCH)
    )
    response = api.post("/api/food-nutrition", json={"foodName": "苹果"})
    assert response.status_code == 200
    body = response.json()
    assert body["foodName"] == "Apples, fuji, with skin, raw"
    assert body["source"] == "fallback"
    assert body["nutrients"][0] == {"name": "热量", "amount": 64, "unit": "千卡"}


def test_food_nutrition_not_found(override):
    client = FakeCompletionClient(replies=["0"])
    api = override(client=client, database=FakeDatabase(foods=[]))
    response = api.post("/api/food-nutrition", json={"foodName": "面包"})
    assert response.status_code == 404
    assert response.json() == {"message": "未找到食物: 面包 (bread)"}
    assert client.prompts == []


def test_food_nutrition_database_error(override):
    api = override(
        client=None,
        database=FakeDatabase(search_error=NutritionDatabaseError("USDA API timeout"))
    )
    response = api.post("/api/food-nutrition", json={"foodName": "milk"})
    assert response.status_code == 500
    assert response.json() == {"message": "服务器错误", "error": "USDA API timeout"}


@pytest.mark.parametrize("history", [
    [{"id": "abc", "content": "x"}],
    [{"id": None, "content": "x"}],
    [{"content": "x"}],
    ["not a message"],
])
def test_chat_rejects_malformed_history(override, history):
    client = FakeCompletionClient(replies=["回答"])
    response = override(client=client).post("/chat", json={"message": "hi", "history": history})
    assert response.status_code == 422
    assert client.prompts == []
