import logging
from typing import Optional

from pydantic import ValidationError

from app.core.cache import CacheService
from app.core.config import settings
from app.core.constants import CONFIG_CACHE_KEY, WORKLOAD_CACHE_KEY
from app.repositories.assignment_config_repository import AssignmentConfigRepository
from app.schemas.assignment_config import AssignmentConfig, AssignmentConfigUpdate

logger = logging.getLogger(__name__)


class AssignmentConfigService:
    """Loads and replaces the singleton assignment configuration.

    Reads go through Redis for ``REDIS_CACHE_TTL`` seconds; updates
    invalidate the cached copy.
    """

    def __init__(self, cache: Optional[CacheService] = None) -> None:
        self._cache: CacheService = cache or CacheService()

    async def get_config(self, config_repo: AssignmentConfigRepository) -> AssignmentConfig:
        """Return the current config, seeding the default row when missing.

        A stored row that no longer validates is replaced by defaults for
        this read (and logged); it is never an error.
        """
        cached = await self._cache.get_json(CONFIG_CACHE_KEY)
        if cached is not None:
            try:
                return AssignmentConfig.model_validate(cached)
            except ValidationError:
                logger.warning("Discarding invalid cached assignment config")

        row = await config_repo.get()
        if row is None:
            row = await config_repo.seed_if_empty(AssignmentConfig().model_dump(mode="json"))
            await config_repo.commit()

        try:
            config = AssignmentConfig.model_validate(row)
        except ValidationError as exc:
            logger.warning("Stored assignment config is invalid, using defaults: %s", exc)
            return AssignmentConfig()

        await self._cache.set_json(
            CONFIG_CACHE_KEY, config.model_dump(mode="json"), ttl=settings.REDIS_CACHE_TTL
        )
        return config

    async def update_config(
        self,
        data: AssignmentConfigUpdate,
        config_repo: AssignmentConfigRepository,
    ) -> AssignmentConfig:
        """Replace the stored config (last writer wins).

        Weights that do not add up to 100 are stored as given and logged;
        an all-zero set falls back to an unweighted average when scoring.
        """
        values = data.model_dump(mode="json")
        row = await config_repo.upsert(values)
        await config_repo.commit()
        await self._cache.delete(CONFIG_CACHE_KEY, WORKLOAD_CACHE_KEY)

        config = AssignmentConfig.model_validate(row)
        if not config.weights_balanced:
            logger.warning(
                "Assignment weights add up to %d instead of 100", config.weight_sum
            )
        logger.info("Assignment config updated")
        return config
