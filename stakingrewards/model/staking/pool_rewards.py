import logging

from .config import PPM_RESOLUTION, REWARD_RATE_FACTOR
from .errors import ArithmeticFault
from .programs import PoolProgram

logger = logging.getLogger(__name__)


class PoolRewards:
    def __init__(self, last_update_time: int = 0, reward_per_token: int = 0, total_claimed_rewards: int = 0):
        """
        Running reward accumulator for one (pool, reserve).
        reward_per_token is scaled by REWARD_RATE_FACTOR.
        """
        self.last_update_time = last_update_time
        self.reward_per_token = reward_per_token
        self.total_claimed_rewards = total_claimed_rewards

    def __repr__(self):
        return (
            f'PoolRewards(last_update_time={self.last_update_time}, reward_per_token={self.reward_per_token}, '
            f'total_claimed_rewards={self.total_claimed_rewards})'
        )

    def __eq__(self, other):
        return isinstance(other, PoolRewards) and self.to_dict() == other.to_dict()

    def copy(self):
        return PoolRewards(self.last_update_time, self.reward_per_token, self.total_claimed_rewards)

    def to_dict(self) -> dict:
        return {
            'last_update_time': self.last_update_time,
            'reward_per_token': self.reward_per_token,
            'total_claimed_rewards': self.total_claimed_rewards
        }

    @staticmethod
    def from_dict(data: dict):
        return PoolRewards(**data)


def accrual_window(program: PoolProgram, last_update_time: int, now: int) -> tuple[int, int]:
    start = max(program.start_time, last_update_time)
    end = min(now, program.end_time)
    return start, end


def reward_per_token(
        pool_rewards: PoolRewards,
        program: PoolProgram,
        reserve_id: str,
        total_staked: int,
        now: int
) -> int:
    """
    Value of the accumulator if it were settled at `now`. Does not modify pool_rewards.
    """
    if program is None or total_staked == 0:
        return pool_rewards.reward_per_token
    start, end = accrual_window(program, pool_rewards.last_update_time, now)
    if start >= end:
        return pool_rewards.reward_per_token
    return pool_rewards.reward_per_token + (
        (end - start) * program.reward_rate * REWARD_RATE_FACTOR * program.reward_share(reserve_id)
        // (total_staked * PPM_RESOLUTION)
    )


def settle(
        pool_rewards: PoolRewards,
        program: PoolProgram,
        reserve_id: str,
        total_staked: int,
        now: int
) -> PoolRewards:
    """
    Catch the accumulator up to `now`, never past the program end.
    Intervals with nothing staked accrue nothing, and are not granted later.
    """
    if program is None:
        return pool_rewards
    new_reward_per_token = reward_per_token(pool_rewards, program, reserve_id, total_staked, now)
    if new_reward_per_token < pool_rewards.reward_per_token:
        raise ArithmeticFault(
            f"reward per token for {program.pool_id}/{reserve_id} would decrease "
            f"from {pool_rewards.reward_per_token} to {new_reward_per_token}"
        )
    if new_reward_per_token != pool_rewards.reward_per_token:
        logger.debug(
            'settled %s/%s: reward per token %s -> %s',
            program.pool_id, reserve_id, pool_rewards.reward_per_token, new_reward_per_token
        )
    pool_rewards.reward_per_token = new_reward_per_token
    pool_rewards.last_update_time = max(pool_rewards.last_update_time, min(now, program.end_time))
    return pool_rewards


def emitted_rewards(program: PoolProgram, reserve_id: str, start_time: int, now: int) -> int:
    """
    Total emission of one reserve between start_time and now, clipped to the program window.
    """
    start, end = accrual_window(program, start_time, now)
    if start >= end:
        return 0
    return (end - start) * program.reward_rate * program.reward_share(reserve_id) // PPM_RESOLUTION
