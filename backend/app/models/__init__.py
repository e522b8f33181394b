from app.models.profile import Profile
from app.models.job import Job
from app.models.content import ContentItem
from app.models.engagement import EngagementEvent
from app.models.embedding import ProfileEmbedding, JobEmbedding, ContentEmbedding, SkillEmbedding
from app.models.score import UserJTSScore, JobMatchJTS, FeedCache
from app.models.ranking_log import RankingLog
from app.models.algorithm_config import AlgorithmConfig

__all__ = [
    "Profile",
    "Job",
    "ContentItem",
    "EngagementEvent",
    "ProfileEmbedding",
    "JobEmbedding",
    "ContentEmbedding",
    "SkillEmbedding",
    "UserJTSScore",
    "JobMatchJTS",
    "FeedCache",
    "RankingLog",
    "AlgorithmConfig",
]
