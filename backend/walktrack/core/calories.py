from walktrack.core.constants import KCAL_PER_KG_KM


def energy_kcal(distance_m: float, weight_kg: float) -> float:
    """Energy spent walking `distance_m` at body weight `weight_kg`.

    energy = km x kg x 0.9. Always computed from the cumulative distance,
    never accumulated, so repeated updates cannot drift.
    """
    return (distance_m / 1000) * weight_kg * KCAL_PER_KG_KM
