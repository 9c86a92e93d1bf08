from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/w8milestones"
    milestones_api_key: str | None = None
    log_level: str = "INFO"

    # Display unit used when a request does not name one
    default_unit: str = "lb"  # "lb" | "kg"

    # Milestone policy constants (see app/milestones/policy.py)
    progress_epsilon: float = 0.1  # |start - goal| below this => progress undefined
    goal_match_tolerance: float = 0.1  # Ledger goal-weight matching tolerance
    goal_change_threshold: float = 0.10  # Relative change that counts as a new goal
    approaching_threshold_lb: float = 5.0  # Converted to the display unit at call time
    completion_tolerance: float = 0.1  # Distance treated as "at goal"

    # Default notification switches (request payloads may override)
    notify_reminders_enabled: bool = True
    notify_goal_enabled: bool = True
    notify_milestones_enabled: bool = True
    notify_approaching_enabled: bool = True

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
