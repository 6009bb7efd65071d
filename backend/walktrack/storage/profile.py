import logging
import math

from pydantic import ValidationError as SchemaError

from walktrack.core.constants import MAX_WEIGHT_KG, MIN_WEIGHT_KG, WEIGHT_KEY
from walktrack.errors import PersistenceError, ValidationError
from walktrack.schemas.walk import UserProfile

logger = logging.getLogger(__name__)


def _is_valid_weight(weight) -> bool:
    return isinstance(weight, (int, float)) and math.isfinite(weight) and MIN_WEIGHT_KG < weight < MAX_WEIGHT_KG


class ProfileStore:
    """Persisted body weight used by the energy model."""

    def __init__(self, kv, default_weight_kg: float = 70.0, key: str = WEIGHT_KEY):
        self._kv = kv
        self._key = key
        self._default = default_weight_kg
        self._weight = default_weight_kg

    @property
    def weight_kg(self) -> float:
        return self._weight

    def load(self) -> float:
        try:
            stored = self._kv.get_double(self._key)
        except PersistenceError as e:
            logger.warning("Weight unreadable, using default %.1f kg: %s", self._default, e)
            stored = None

        if stored is not None and not _is_valid_weight(stored):
            logger.warning("Stored weight %r out of range, using default %.1f kg", stored, self._default)
            stored = None

        self._weight = stored if stored is not None else self._default
        return self._weight

    def update(self, weight) -> float:
        """Validate and persist a new weight; returns the accepted value.

        Values outside (20, 300) raise ValidationError and leave the stored
        weight untouched. Write failures raise PersistenceError.
        """
        try:
            profile = UserProfile(weight_kg=weight)
        except SchemaError as e:
            raise ValidationError(
                f"Weight must be between {MIN_WEIGHT_KG:g} and {MAX_WEIGHT_KG:g} kg (exclusive)",
                value=weight,
            ) from e

        self._kv.set_double(self._key, profile.weight_kg)
        self._weight = profile.weight_kg
        logger.info("Weight updated to %.1f kg", profile.weight_kg)
        return profile.weight_kg
