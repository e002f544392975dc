import logging

from .config import PPM_RESOLUTION, REWARD_RATE_FACTOR
from .errors import ArithmeticFault
from .multiplier import apply_multiplier, apply_higher_multiplier, remove_multiplier
from .pool_rewards import emitted_rewards
from .programs import PoolProgram

logger = logging.getLogger(__name__)


class ProviderRewards:
    def __init__(
            self,
            reward_per_token: int = 0,
            pending_base_rewards: int = 0,
            total_claimed_rewards: int = 0,
            effective_staking_time: int = 0,
            base_rewards_debt: int = 0,
            base_rewards_debt_multiplier: int = 0
    ):
        """
        One provider's position in one (pool, reserve).
        reward_per_token is the provider's snapshot of the pool accumulator.
        pending_base_rewards and base_rewards_debt are unmultiplied amounts.
        """
        self.reward_per_token = reward_per_token
        self.pending_base_rewards = pending_base_rewards
        self.total_claimed_rewards = total_claimed_rewards
        self.effective_staking_time = effective_staking_time
        self.base_rewards_debt = base_rewards_debt
        self.base_rewards_debt_multiplier = base_rewards_debt_multiplier

    def __repr__(self):
        return (
            f'ProviderRewards(reward_per_token={self.reward_per_token}, '
            f'pending_base_rewards={self.pending_base_rewards}, '
            f'total_claimed_rewards={self.total_claimed_rewards}, '
            f'effective_staking_time={self.effective_staking_time}, '
            f'base_rewards_debt={self.base_rewards_debt}, '
            f'base_rewards_debt_multiplier={self.base_rewards_debt_multiplier})'
        )

    def __eq__(self, other):
        return isinstance(other, ProviderRewards) and self.to_dict() == other.to_dict()

    def copy(self):
        return ProviderRewards(**self.to_dict())

    def to_dict(self) -> dict:
        return {
            'reward_per_token': self.reward_per_token,
            'pending_base_rewards': self.pending_base_rewards,
            'total_claimed_rewards': self.total_claimed_rewards,
            'effective_staking_time': self.effective_staking_time,
            'base_rewards_debt': self.base_rewards_debt,
            'base_rewards_debt_multiplier': self.base_rewards_debt_multiplier
        }

    @staticmethod
    def from_dict(data: dict):
        return ProviderRewards(**data)


def base_rewards(provider_rewards: ProviderRewards, reward_per_token: int, staked_amount: int) -> int:
    """
    Unmultiplied rewards accrued since the provider's accumulator snapshot.
    """
    if reward_per_token < provider_rewards.reward_per_token:
        raise ArithmeticFault(
            f"pool reward per token {reward_per_token} is behind provider snapshot {provider_rewards.reward_per_token}"
        )
    return staked_amount * (reward_per_token - provider_rewards.reward_per_token) // REWARD_RATE_FACTOR


def verify_base_rewards(
        base: int,
        provider_rewards: ProviderRewards,
        program: PoolProgram,
        reserve_id: str,
        staked_amount: int,
        total_staked: int,
        now: int
) -> None:
    if staked_amount > total_staked:
        raise ArithmeticFault(f"provider stake {staked_amount} exceeds total stake {total_staked}")
    if program is None or provider_rewards.effective_staking_time < program.start_time:
        return
    # the snapshot was taken no earlier than effective_staking_time, so the reserve emission since then bounds it
    max_base = emitted_rewards(program, reserve_id, provider_rewards.effective_staking_time, now)
    if base > max_base:
        raise ArithmeticFault(
            f"base rewards {base} exceed the {max_base} emitted to {program.pool_id}/{reserve_id}"
        )


def update_provider_rewards(
        provider_rewards: ProviderRewards,
        reward_per_token: int,
        staked_amount: int
) -> ProviderRewards:
    """
    Move rewards accrued since the last snapshot into pending_base_rewards.
    The pool accumulator must already be settled.
    """
    provider_rewards.pending_base_rewards += base_rewards(provider_rewards, reward_per_token, staked_amount)
    provider_rewards.reward_per_token = reward_per_token
    return provider_rewards


def full_rewards(provider_rewards: ProviderRewards, fresh_base_rewards: int, multiplier: int) -> int:
    """
    Payable amount: pending and fresh rewards at the current multiplier,
    plus debt at the better of its frozen multiplier and the current one.
    """
    return (
        apply_multiplier(provider_rewards.pending_base_rewards + fresh_base_rewards, multiplier)
        + apply_higher_multiplier(
            provider_rewards.base_rewards_debt, multiplier, provider_rewards.base_rewards_debt_multiplier
        )
    )


def freeze_rewards(provider_rewards: ProviderRewards, full: int, multiplier: int, now: int) -> ProviderRewards:
    """
    Convert everything currently payable into debt at the multiplier in force, and restart the staking clock.
    """
    provider_rewards.base_rewards_debt = remove_multiplier(full, multiplier)
    provider_rewards.base_rewards_debt_multiplier = multiplier
    provider_rewards.pending_base_rewards = 0
    provider_rewards.effective_staking_time = now
    logger.debug('froze %s rewards at multiplier %s', full, multiplier / PPM_RESOLUTION)
    return provider_rewards
