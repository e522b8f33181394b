from app.repositories.source_repository import SourceRepository
from app.repositories.embedding_repository import EmbeddingRepository
from app.repositories.score_repository import ScoreRepository
from app.repositories.config_repository import ConfigRepository
from app.repositories.ranking_log_repository import RankingLogRepository

__all__ = [
    "SourceRepository",
    "EmbeddingRepository",
    "ScoreRepository",
    "ConfigRepository",
    "RankingLogRepository",
]
