from app.schemas.source import Profile, Job, ContentItem, EngagementEvent
from app.schemas.embedding import (
    ProfileEmbeddingRecord,
    JobEmbeddingRecord,
    ContentEmbeddingRecord,
    SimilarProfile,
)
from app.schemas.weights import JTSWeights, FeedWeights, MatchingThresholds, WeightConfig
from app.schemas.scores import (
    SkillMatchBreakdown,
    EngagementTotals,
    JTSComponents,
    ScoreSnapshot,
    BatchResult,
)
from app.schemas.feed import FeedScores, FeedItem, FeedCacheItem, FeedCacheEntry
from app.schemas.ranking import RankingFactors, RankingLogRecord, RankingStatistics, JobMatchResult

__all__ = [
    "Profile",
    "Job",
    "ContentItem",
    "EngagementEvent",
    "ProfileEmbeddingRecord",
    "JobEmbeddingRecord",
    "ContentEmbeddingRecord",
    "SimilarProfile",
    "JTSWeights",
    "FeedWeights",
    "MatchingThresholds",
    "WeightConfig",
    "SkillMatchBreakdown",
    "EngagementTotals",
    "JTSComponents",
    "ScoreSnapshot",
    "BatchResult",
    "FeedScores",
    "FeedItem",
    "FeedCacheItem",
    "FeedCacheEntry",
    "RankingFactors",
    "RankingLogRecord",
    "RankingStatistics",
    "JobMatchResult",
]
