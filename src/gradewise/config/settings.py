from dataclasses import dataclass
import os
from dotenv import load_dotenv


load_dotenv()


def _split_csv(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    min_floor_score: float = float(os.getenv("GRADEWISE_MIN_FLOOR_SCORE", "60.0"))
    total_semesters: int = int(os.getenv("GRADEWISE_TOTAL_SEMESTERS", "8"))

    max_subjects_per_semester: int = int(os.getenv("GRADEWISE_MAX_SUBJECTS_PER_SEMESTER", "2"))
    max_semesters: int = int(os.getenv("GRADEWISE_MAX_SEMESTERS", "4"))

    db_path: str = os.getenv("GRADEWISE_DB_PATH", "gradewise.db")
    log_level: str = os.getenv("GRADEWISE_LOG_LEVEL", "INFO")

    cors_allowed_origins: tuple[str, ...] = _split_csv(
        os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )


settings = Settings()
