def seconds_to_clock(total_seconds: int) -> str:
    """
    Convert total seconds (int) -> 'M:SS' as shown on the live panel.
    Example: 754 -> '12:34', 3725 -> '62:05'
    """
    minutes = total_seconds // 60
    seconds = total_seconds % 60
    return f"{minutes}:{seconds:02d}"


def seconds_to_hhmmss(total_seconds: int) -> str:
    """
    Convert total seconds (int) -> 'HH:MM:SS'.
    Example: 2732 -> '00:45:32'
    """
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def compute_speed_kmh(distance_m: float, duration_seconds: int) -> float:
    """
    Average speed in km/h; 0.0 before the first second has elapsed.
    Example: distance=1500 m, duration=900 s -> 6.0
    """
    if duration_seconds <= 0:
        return 0.0
    return (distance_m / 1000) / (duration_seconds / 3600)
