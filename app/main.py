import logging

from fastapi import FastAPI

from app.config import settings
from app.milestones.router import router as goals_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="W8 Milestones", version="0.1.0")
app.include_router(goals_router)


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "goals": {
            "progress": "/goals/progress",
            "evaluate": "/goals/milestones/evaluate",
            "goal_change": "/goals/goal-change",
            "interval_milestones": "/goals/interval-milestones",
            "achievements": "/goals/achievements",
            "achievements_latest": "/goals/achievements/latest",
            "achievement_delivered": "/goals/achievements/{id}/delivered",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
