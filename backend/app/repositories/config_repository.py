from typing import List, Optional

from sqlalchemy import select, update

from app.models import AlgorithmConfig
from app.repositories.base import BaseRepository
from app.schemas import WeightConfig


class ConfigRepository(BaseRepository):
    """Named, versioned algorithm configurations."""

    async def get_active(self, config_name: str) -> Optional[WeightConfig]:
        async with self._reading("get_active_config") as db:
            result = await db.execute(
                select(AlgorithmConfig)
                .where(AlgorithmConfig.config_name == config_name, AlgorithmConfig.is_active.is_(True))
                .order_by(AlgorithmConfig.version.desc())
            )
            row = result.scalars().first()
            return WeightConfig.model_validate(row) if row else None

    async def list_versions(self, config_name: str) -> List[WeightConfig]:
        async with self._reading("list_config_versions") as db:
            result = await db.execute(
                select(AlgorithmConfig)
                .where(AlgorithmConfig.config_name == config_name)
                .order_by(AlgorithmConfig.version)
            )
            return [WeightConfig.model_validate(row) for row in result.scalars()]

    async def save(self, config: WeightConfig) -> WeightConfig:
        """
        Insert a new version of a config.

        When the new version is active, every other version with the same
        name is deactivated in the same transaction.
        """
        async with self._writing("save_config") as db:
            if config.is_active:
                await db.execute(
                    update(AlgorithmConfig)
                    .where(AlgorithmConfig.config_name == config.config_name)
                    .values(is_active=False)
                )
            row = AlgorithmConfig(
                config_name=config.config_name,
                config_type=config.config_type,
                version=config.version,
                config_value=config.config_value,
                description=config.description,
                is_active=config.is_active,
            )
            db.add(row)
            await db.flush()
            return WeightConfig.model_validate(row)

    async def activate(self, config_name: str, version: int) -> bool:
        """Make one version active and deactivate the rest. Returns False if the version is unknown."""
        async with self._writing("activate_config") as db:
            result = await db.execute(
                select(AlgorithmConfig.id).where(
                    AlgorithmConfig.config_name == config_name, AlgorithmConfig.version == version
                )
            )
            if result.first() is None:
                return False
            await db.execute(
                update(AlgorithmConfig)
                .where(AlgorithmConfig.config_name == config_name)
                .values(is_active=AlgorithmConfig.version == version)
            )
            return True
