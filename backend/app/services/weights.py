"""
Weight Configuration Provider

Reads named, versioned weight configs from algorithm_config through a
short-lived Redis cache, falling back to hardcoded defaults whenever a config
is missing, malformed or unreadable. Engines receive a provider instead of
reading configs themselves, so tests can pin weights with
StaticWeightProvider.

Config names:
    - jts_weights_v1: JTSWeights (must sum to 1.0)
    - feed_weights_v1: FeedWeights (must sum to 1.0)
    - matching_threshold: MatchingThresholds
"""

import logging
from typing import Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from app.repositories import ConfigRepository
from app.schemas import FeedWeights, JTSWeights, MatchingThresholds, WeightConfig
from app.services.cache import RankingCache
from app.services.errors import ConfigLookupFailure, DependencyUnavailable

logger = logging.getLogger(__name__)

JTS_WEIGHTS_CONFIG = "jts_weights_v1"
FEED_WEIGHTS_CONFIG = "feed_weights_v1"
THRESHOLD_CONFIG = "matching_threshold"

CONFIG_TYPES: Dict[str, str] = {
    JTS_WEIGHTS_CONFIG: "jts_weights",
    FEED_WEIGHTS_CONFIG: "feed_weights",
    THRESHOLD_CONFIG: "threshold",
}

WEIGHT_SUM_TOLERANCE = 1e-6

ModelT = TypeVar("ModelT", bound=BaseModel)


def weights_sum_to_one(weights: BaseModel) -> bool:
    return abs(sum(weights.model_dump().values()) - 1.0) <= WEIGHT_SUM_TOLERANCE


def parse_config(config_name: str, value: Dict, model: Type[ModelT]) -> ModelT:
    """
    Parse a raw config value into its typed model.

    Raises:
        ConfigLookupFailure: If the value is malformed or weights do not sum to 1.0
    """
    try:
        parsed = model.model_validate(value)
    except ValidationError as e:
        raise ConfigLookupFailure(f"Malformed config {config_name}: {e}") from e

    if model is not MatchingThresholds and not weights_sum_to_one(parsed):
        raise ConfigLookupFailure(f"Weights in {config_name} do not sum to 1.0")
    return parsed


class StaticWeightProvider:
    """Fixed weights; used by tests and when no config store is wired."""

    def __init__(
        self,
        jts_weights: Optional[JTSWeights] = None,
        feed_weights: Optional[FeedWeights] = None,
        thresholds: Optional[MatchingThresholds] = None,
    ):
        self.jts_weights = jts_weights or JTSWeights()
        self.feed_weights = feed_weights or FeedWeights()
        self.thresholds = thresholds or MatchingThresholds()

    async def get_jts_weights(self) -> JTSWeights:
        return self.jts_weights

    async def get_feed_weights(self) -> FeedWeights:
        return self.feed_weights

    async def get_thresholds(self) -> MatchingThresholds:
        return self.thresholds


class WeightConfigProvider:
    """
    Read-through provider for weight configs with default fallback.

    Attributes:
        configs: algorithm_config storage
        cache: Optional Redis cache for active config values
    """

    def __init__(
        self,
        configs: ConfigRepository,
        cache: Optional[RankingCache] = None,
        default_thresholds: Optional[MatchingThresholds] = None,
    ):
        self.configs = configs
        self.cache = cache
        self.default_thresholds = default_thresholds or MatchingThresholds()

    async def _load(self, config_name: str) -> Dict:
        if self.cache is not None:
            cached = await self.cache.get_weights(config_name)
            if cached is not None:
                return cached

        try:
            config = await self.configs.get_active(config_name)
        except DependencyUnavailable as e:
            raise ConfigLookupFailure(f"Could not read {config_name}: {e}") from e

        if config is None:
            raise ConfigLookupFailure(f"No active config named {config_name}")

        if self.cache is not None:
            await self.cache.set_weights(config_name, config.config_value)
        return config.config_value

    async def _get(self, config_name: str, model: Type[ModelT], default: Optional[ModelT] = None) -> ModelT:
        try:
            return parse_config(config_name, await self._load(config_name), model)
        except ConfigLookupFailure as e:
            logger.warning(f"Using default {model.__name__}: {e}")
            return default or model()

    async def get_jts_weights(self) -> JTSWeights:
        return await self._get(JTS_WEIGHTS_CONFIG, JTSWeights)

    async def get_feed_weights(self) -> FeedWeights:
        return await self._get(FEED_WEIGHTS_CONFIG, FeedWeights)

    async def get_thresholds(self) -> MatchingThresholds:
        return await self._get(THRESHOLD_CONFIG, MatchingThresholds, self.default_thresholds)

    async def save_config(
        self,
        config_name: str,
        value: Dict,
        description: Optional[str] = None,
        activate: bool = True,
    ) -> WeightConfig:
        """
        Store a new version of a named config.

        Raises:
            ConfigLookupFailure: If the value is malformed
            PersistenceFailure: If the write fails
        """
        if config_name not in CONFIG_TYPES:
            raise ConfigLookupFailure(f"Unknown config name: {config_name}")

        model = {
            JTS_WEIGHTS_CONFIG: JTSWeights,
            FEED_WEIGHTS_CONFIG: FeedWeights,
            THRESHOLD_CONFIG: MatchingThresholds,
        }[config_name]
        parse_config(config_name, value, model)

        versions = await self.configs.list_versions(config_name)
        next_version = max((v.version for v in versions), default=0) + 1
        saved = await self.configs.save(
            WeightConfig(
                config_name=config_name,
                config_type=CONFIG_TYPES[config_name],
                version=next_version,
                config_value=value,
                description=description,
                is_active=activate,
            )
        )
        if activate and self.cache is not None:
            await self.cache.invalidate_weights(config_name)
        logger.info(f"Saved {config_name} version {next_version} (active={activate})")
        return saved

    async def activate_config(self, config_name: str, version: int) -> bool:
        """
        Activate one version of a config, deactivating the others.

        Raises:
            PersistenceFailure: If the write fails
        """
        activated = await self.configs.activate(config_name, version)
        if activated and self.cache is not None:
            await self.cache.invalidate_weights(config_name)
        return activated
