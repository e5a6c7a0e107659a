"""Runtime-editable business settings.

Each setting is a ``ConfigurationSetting`` aggregate keyed by its dotted
name (``shipping.free_threshold``) holding a JSON value. Pricing and
checkout never read settings one by one: they take a ``PricingConfig``
snapshot through ``current_config()`` at the start of each run.
"""

import json
from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, String, Text
from protean.utils.globals import current_domain

from ordering.domain import logger, ordering
from pricing.config import DEFAULTS, ConfigurationProvider, PricingConfig


@ordering.aggregate
class ConfigurationSetting:
    key = String(identifier=True, max_length=100)
    value = Text(required=True)  # JSON
    updated_at = DateTime()

    @property
    def parsed_value(self):
        return json.loads(self.value)

    def change(self, value) -> None:
        self.value = json.dumps(value)
        self.updated_at = datetime.now(UTC)
        self.raise_(ConfigurationChanged(key=self.key, value=self.value))


@ordering.event(part_of=ConfigurationSetting)
class ConfigurationChanged:
    __version__ = 1

    key = String(required=True, max_length=100)
    value = Text(required=True)


@ordering.command(part_of=ConfigurationSetting)
class SetConfiguration:
    key = String(required=True, max_length=100)
    value = Text(required=True)  # JSON


@ordering.command_handler(part_of=ConfigurationSetting)
class ConfigurationHandler:
    @handle(SetConfiguration)
    def set_configuration(self, command):
        if command.key not in DEFAULTS:
            raise ValidationError({"key": [f"Unknown configuration key: {command.key}"]})
        try:
            value = json.loads(command.value)
        except ValueError:
            raise ValidationError({"value": ["Value must be valid JSON"]}) from None

        repo = current_domain.repository_for(ConfigurationSetting)
        try:
            setting = repo.get(command.key)
        except ObjectNotFoundError:
            setting = ConfigurationSetting(key=command.key, value=json.dumps(DEFAULTS[command.key]))

        setting.change(value)
        repo.add(setting)
        logger.info("Configuration changed", key=command.key)
        return setting.key


class RepositoryConfiguration(ConfigurationProvider):
    """Configuration provider backed by ``ConfigurationSetting`` records."""

    def get(self, key: str, default=None):
        try:
            setting = current_domain.repository_for(ConfigurationSetting).get(key)
        except ObjectNotFoundError:
            return default
        try:
            return setting.parsed_value
        except ValueError:
            logger.warning("Stored configuration is not valid JSON, using default", key=key)
            return default


def current_config() -> PricingConfig:
    """Load a fresh pricing snapshot from the settings store."""
    return PricingConfig.load(RepositoryConfiguration())
