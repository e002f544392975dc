from .config import PPM_RESOLUTION, MULTIPLIER_INCREMENT, MAX_MULTIPLIER, WEEK
from .programs import PoolProgram


def staking_duration(
        program: PoolProgram,
        effective_staking_time: int,
        checkpoint: int,
        last_claim_time: int,
        now: int
) -> int:
    """
    Seconds of uninterrupted staking, counted inside the program window only.
    """
    end = min(now, program.end_time)
    start = max(effective_staking_time, program.start_time, checkpoint, last_claim_time)
    return max(0, end - start)


def multiplier_for_duration(duration: int) -> int:
    # 0.25x per completed week, capped at 2x after four weeks
    weeks = min(duration, 4 * WEEK) // WEEK
    return min(PPM_RESOLUTION + MULTIPLIER_INCREMENT * weeks, MAX_MULTIPLIER)


def rewards_multiplier(
        program: PoolProgram,
        effective_staking_time: int,
        checkpoint: int,
        last_claim_time: int,
        now: int
) -> int:
    return multiplier_for_duration(
        staking_duration(program, effective_staking_time, checkpoint, last_claim_time, now)
    )


def apply_multiplier(amount: int, multiplier: int) -> int:
    if multiplier == PPM_RESOLUTION:
        return amount
    return amount * multiplier // PPM_RESOLUTION


def apply_higher_multiplier(amount: int, multiplier1: int, multiplier2: int) -> int:
    return apply_multiplier(amount, max(multiplier1, multiplier2))


def remove_multiplier(amount: int, multiplier: int) -> int:
    if multiplier == PPM_RESOLUTION:
        return amount
    return amount * PPM_RESOLUTION // multiplier
