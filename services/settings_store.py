"""
Storage for the ESI contribution settings document.

The settings are a flat mapping of five numeric fields. Writes replace the
whole document (last writer wins); there is no versioning or audit trail.
"""

import json
import logging
import math
import os
import tempfile

from config import DEFAULT_ESI_SETTINGS

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "employee_esi_rate",
    "employer_esi_rate",
    "esi_threshold",
    "esi_ceiling",
    "medical_benefit_rate",
)


def coerce_number(value):
    """Numeric coercion used for settings: anything unparseable becomes 0.0"""
    if isinstance(value, (bool, int, float)):
        number = float(value)
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return 0.0
    # NaN and infinity are not valid JSON numbers
    return number if math.isfinite(number) else 0.0


def coerce_settings(data):
    """Build a complete settings document from raw input.

    Missing or invalid fields silently become 0.0; unknown keys are dropped.
    """
    data = data or {}
    return {field: coerce_number(data.get(field)) for field in SETTINGS_FIELDS}


class SettingsStore:
    """Interface for a settings backend"""

    def load(self):
        raise NotImplementedError

    def save(self, settings):
        raise NotImplementedError


class InMemorySettingsStore(SettingsStore):

    def __init__(self, initial=None):
        self._settings = dict(initial) if initial else dict(DEFAULT_ESI_SETTINGS)

    def load(self):
        return dict(self._settings)

    def save(self, settings):
        self._settings = dict(settings)


class JsonFileSettingsStore(SettingsStore):
    """Settings persisted as a pretty-printed JSON file on disk"""

    def __init__(self, path):
        self.path = path

    def load(self):
        if not os.path.exists(self.path):
            return dict(DEFAULT_ESI_SETTINGS)

        with open(self.path, "r", encoding="utf-8") as fh:
            stored = json.load(fh)

        settings = dict(DEFAULT_ESI_SETTINGS)
        settings.update({k: v for k, v in stored.items() if k in SETTINGS_FIELDS})
        return settings

    def save(self, settings):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # A failed write leaves the previous document in place
        fd, tmp_path = tempfile.mkstemp(prefix=".esi_settings.", suffix=".tmp", dir=directory or None)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(settings, fh, indent=4)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.debug("ESI settings written to %s", self.path)
