import logging

from .config import PPM_RESOLUTION
from .errors import ConfigurationError, NotParticipating

logger = logging.getLogger(__name__)


class PoolProgram:
    def __init__(
            self,
            pool_id: str,
            reserve_tokens: list[str],
            reward_shares: list[int],
            start_time: int,
            end_time: int,
            reward_rate: int
    ):
        """
        Time-boxed reward emission schedule for one pool.
        reward_shares are parts per million of reward_rate, one per reserve token, summing to PPM_RESOLUTION.
        """
        self.pool_id = pool_id
        self.reserve_tokens = tuple(reserve_tokens)
        self.reward_shares = tuple(reward_shares)
        self.start_time = start_time
        self.end_time = end_time
        self.reward_rate = reward_rate

    def __repr__(self):
        return (
            f'PoolProgram: {self.pool_id}\n'
            f'    reserves: {dict(zip(self.reserve_tokens, self.reward_shares))}\n'
            f'    window: {self.start_time} -> {self.end_time}\n'
            f'    reward rate: {self.reward_rate}\n'
        )

    def __eq__(self, other):
        return isinstance(other, PoolProgram) and self.to_dict() == other.to_dict()

    def copy(self):
        return PoolProgram(
            pool_id=self.pool_id,
            reserve_tokens=list(self.reserve_tokens),
            reward_shares=list(self.reward_shares),
            start_time=self.start_time,
            end_time=self.end_time,
            reward_rate=self.reward_rate
        )

    def is_participating(self, now: int) -> bool:
        return self.end_time > now

    def reward_share(self, reserve_id: str) -> int:
        if reserve_id not in self.reserve_tokens:
            return 0
        return self.reward_shares[self.reserve_tokens.index(reserve_id)]

    def to_dict(self) -> dict:
        return {
            'pool_id': self.pool_id,
            'reserve_tokens': list(self.reserve_tokens),
            'reward_shares': list(self.reward_shares),
            'start_time': self.start_time,
            'end_time': self.end_time,
            'reward_rate': self.reward_rate
        }

    @staticmethod
    def from_dict(data: dict):
        return PoolProgram(**data)


class ProgramRegistry:
    def __init__(self, network_token: str = None):
        self.network_token = network_token
        self.programs: dict[str: PoolProgram] = {}

    def copy(self):
        copy_self = ProgramRegistry(network_token=self.network_token)
        copy_self.programs = {pool_id: program.copy() for pool_id, program in self.programs.items()}
        return copy_self

    def program(self, pool_id: str) -> PoolProgram or None:
        return self.programs.get(pool_id)

    def is_participating(self, pool_id: str, now: int) -> bool:
        program = self.programs.get(pool_id)
        return program is not None and program.is_participating(now)

    def is_reserve_participating(self, pool_id: str, reserve_id: str, now: int) -> bool:
        if not self.is_participating(pool_id, now):
            return False
        return reserve_id in self.programs[pool_id].reserve_tokens

    def validate_program(
            self,
            pool_id: str,
            reserve_tokens: list[str],
            reward_shares: list[int],
            end_time: int,
            reward_rate: int,
            now: int
    ) -> None:
        if not pool_id:
            raise ConfigurationError("Pool id must not be empty")
        if not 0 < len(reserve_tokens) <= 2:
            raise ConfigurationError(f"Pool {pool_id} must have one or two reserve tokens, got {len(reserve_tokens)}")
        if len(set(reserve_tokens)) != len(reserve_tokens) or not all(reserve_tokens):
            raise ConfigurationError(f"Invalid reserve tokens for pool {pool_id}: {reserve_tokens}")
        if self.network_token is not None and self.network_token not in reserve_tokens:
            raise ConfigurationError(f"Pool {pool_id} reserves must include network token {self.network_token}")
        if len(reward_shares) != len(reserve_tokens):
            raise ConfigurationError(f"Pool {pool_id} needs one reward share per reserve token")
        if any(share < 0 for share in reward_shares) or sum(reward_shares) != PPM_RESOLUTION:
            raise ConfigurationError(f"Reward shares for pool {pool_id} must sum to {PPM_RESOLUTION}")
        if end_time <= now:
            raise ConfigurationError(f"End time {end_time} for pool {pool_id} is not in the future")
        if reward_rate <= 0:
            raise ConfigurationError(f"Reward rate for pool {pool_id} must be positive")
        if self.is_participating(pool_id, now):
            raise ConfigurationError(f"Pool {pool_id} is already participating")

    def add_program(
            self,
            pool_id: str,
            reserve_tokens: list[str],
            reward_shares: list[int],
            end_time: int,
            reward_rate: int,
            now: int
    ) -> PoolProgram:
        self.validate_program(pool_id, reserve_tokens, reward_shares, end_time, reward_rate, now)
        program = PoolProgram(
            pool_id=pool_id,
            reserve_tokens=reserve_tokens,
            reward_shares=reward_shares,
            start_time=now,
            end_time=end_time,
            reward_rate=reward_rate
        )
        self.programs[pool_id] = program
        logger.info('added program for pool %s (%s -> %s, rate %s)', pool_id, now, end_time, reward_rate)
        return program

    def remove_program(self, pool_id: str, now: int) -> PoolProgram:
        if not self.is_participating(pool_id, now):
            raise NotParticipating(pool_id)
        logger.info('removed program for pool %s', pool_id)
        return self.programs.pop(pool_id)

    def extend_program(self, pool_id: str, new_end_time: int, now: int) -> PoolProgram:
        if not self.is_participating(pool_id, now):
            raise NotParticipating(pool_id)
        program = self.programs[pool_id]
        if new_end_time <= program.end_time:
            raise ConfigurationError(
                f"New end time {new_end_time} for pool {pool_id} must be after current end {program.end_time}"
            )
        program.end_time = new_end_time
        logger.info('extended program for pool %s to %s', pool_id, new_end_time)
        return program
