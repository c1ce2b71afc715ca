from __future__ import annotations

from enum import StrEnum

from gatehouse_core.config import FeaturesConfig


class Feature(StrEnum):
    ADMIN_CONSOLE = "admin_console"


class FeatureFlags:
    def __init__(self, config: FeaturesConfig) -> None:
        self._config = config

    def is_feature_enabled(self, feature: Feature) -> bool:
        return bool(getattr(self._config, feature.value, False))
