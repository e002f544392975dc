import logging
import threading
from contextlib import contextmanager
from typing import Callable

from .clock import Clock, SystemClock
from .config import Config, ROLE_SUPERVISOR, ROLE_PUBLISHER
from .errors import AccessDenied, ConfigurationError, NoRewards, NotParticipating, require_unique
from .events import (
    Event, PoolProgramAdded, PoolProgramRemoved, PoolProgramExtended,
    RewardsClaimed, RewardsStaked, LastClaimTimeUpdated
)
from .issuance import TokenIssuer, RoleGate
from .liquidity import LiquidityLedger, CheckpointStore
from .multiplier import rewards_multiplier, remove_multiplier
from .pool_rewards import PoolRewards, settle, reward_per_token
from .programs import PoolProgram, ProgramRegistry
from .provider_rewards import (
    ProviderRewards, base_rewards, verify_base_rewards, update_provider_rewards, full_rewards, freeze_rewards
)

logger = logging.getLogger(__name__)


class StakingRewards:
    """
    Liquidity mining rewards engine.

    Accumulators are settled lazily: every notification, claim and administrative change first catches
    the touched (pool, reserve) accumulators up to the current time, and only then changes state.
    Queries (rewards, base_rewards) compute the same settlement on the fly without storing it.

    Every public operation is all-or-nothing. Engine state, and the state of collaborators that support
    snapshot()/restore(), is rolled back if anything raises, and events of the failed operation are dropped.
    """

    def __init__(
            self,
            ledger: LiquidityLedger,
            issuer: TokenIssuer,
            clock: Clock = None,
            checkpoints: CheckpointStore = None,
            sink: LiquidityLedger = None,
            role_gate: RoleGate = None,
            config: Config = None,
            subscribe: bool = True
    ):
        self.config = config or Config()
        self.clock = clock or SystemClock()
        self.ledger = ledger
        self.issuer = issuer
        self.checkpoints = checkpoints if checkpoints is not None else ledger.checkpoints
        self.sink = sink or ledger
        self.role_gate = role_gate
        self.unique_id = self.config.rewards_account

        self.registry = ProgramRegistry(network_token=self.config.network_token)
        self.pool_rewards: dict[tuple: PoolRewards] = {}
        self.provider_rewards: dict[tuple: ProviderRewards] = {}
        self.provider_pool_index: dict[str: list[str]] = {}
        self.last_claim_times: dict[str: int] = {}

        self.events: list[Event] = []
        self.listeners: list[Callable] = []
        self._pending_events: list[Event] = []
        self._lock = threading.RLock()
        self._depth = 0

        if subscribe:
            ledger.subscribe(self)

    def __repr__(self):
        return (
            f'StakingRewards: {self.unique_id}\n'
            f'********************************\n'
            f'time: {self.clock.now()}\n'
            f'programs: (\n\n' +
            '\n'.join([repr(program) for program in self.registry.programs.values()]) + ')\n'
            f'providers: {len(self.provider_pool_index)}\n'
        )

    def __getstate__(self):
        state = self.__dict__.copy()
        del state['_lock']
        return state

    def __setstate__(self, state):
        self.__dict__.update(state)
        self._lock = threading.RLock()

    # state

    def snapshot(self) -> dict:
        return {
            'registry': self.registry.copy(),
            'pool_rewards': {k: v.copy() for k, v in self.pool_rewards.items()},
            'provider_rewards': {k: v.copy() for k, v in self.provider_rewards.items()},
            'provider_pool_index': {k: list(v) for k, v in self.provider_pool_index.items()},
            'last_claim_times': dict(self.last_claim_times)
        }

    def restore(self, snapshot: dict) -> None:
        self.registry = snapshot['registry']
        self.pool_rewards = snapshot['pool_rewards']
        self.provider_rewards = snapshot['provider_rewards']
        self.provider_pool_index = snapshot['provider_pool_index']
        self.last_claim_times = snapshot['last_claim_times']

    def subscribe(self, listener: Callable[[Event], None]) -> None:
        self.listeners.append(listener)

    def _collaborators(self) -> list:
        collaborators = []
        for collaborator in (self.ledger, self.sink, self.issuer):
            if hasattr(collaborator, 'snapshot') and collaborator not in collaborators:
                collaborators.append(collaborator)
        return collaborators

    @contextmanager
    def _atomic(self, operation: str):
        with self._lock:
            if self._depth > 0:
                # nested call, e.g. a ledger notification triggered by stake_rewards
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            state = self.snapshot()
            collaborator_states = [(c, c.snapshot()) for c in self._collaborators()]
            self._depth = 1
            try:
                yield
            except Exception as e:
                self.restore(state)
                for collaborator, collaborator_state in collaborator_states:
                    collaborator.restore(collaborator_state)
                self._pending_events = []
                logger.warning('%s aborted: %s', operation, e)
                raise
            finally:
                self._depth = 0

            events, self._pending_events = self._pending_events, []
            self.events.extend(events)
        for event in events:
            for listener in self.listeners:
                listener(event)

    def _emit(self, event: Event) -> None:
        self._pending_events.append(event)

    def _require_role(self, caller: str, role: str) -> None:
        if self.role_gate is not None:
            self.role_gate.check(caller, role)

    def _require_provider(self, caller: str, provider: str) -> None:
        if caller is not None and caller != provider:
            raise AccessDenied(caller, f'owner of {provider}')

    # program registry

    def program(self, pool_id: str) -> PoolProgram or None:
        program = self.registry.program(pool_id)
        return program.copy() if program else None

    def programs(self) -> list[PoolProgram]:
        return [program.copy() for program in self.registry.programs.values()]

    def is_participating(self, pool_id: str) -> bool:
        return self.registry.is_participating(pool_id, self.clock.now())

    def is_reserve_participating(self, pool_id: str, reserve_id: str) -> bool:
        return self.registry.is_reserve_participating(pool_id, reserve_id, self.clock.now())

    def add_program(
            self,
            pool_id: str,
            reserve_tokens: list[str],
            reward_shares: list[int],
            end_time: int,
            reward_rate: int,
            caller: str = None
    ) -> PoolProgram:
        with self._atomic('add_program'):
            self._require_role(caller, ROLE_SUPERVISOR)
            return self._add_program(pool_id, reserve_tokens, reward_shares, end_time, reward_rate)

    def add_programs(self, programs: list[dict], caller: str = None) -> list[PoolProgram]:
        """
        programs should be in the form of:
        [
            {'pool_id': ..., 'reserve_tokens': [...], 'reward_shares': [...], 'end_time': ..., 'reward_rate': ...}
        ]
        """
        with self._atomic('add_programs'):
            self._require_role(caller, ROLE_SUPERVISOR)
            require_unique([program['pool_id'] for program in programs])
            return [self._add_program(**program) for program in programs]

    def _add_program(
            self,
            pool_id: str,
            reserve_tokens: list[str],
            reward_shares: list[int],
            end_time: int,
            reward_rate: int
    ) -> PoolProgram:
        now = self.clock.now()
        lapsed = self.registry.program(pool_id)
        if lapsed is not None and not lapsed.is_participating(now):
            self._settle_program(lapsed)
        program = self.registry.add_program(pool_id, reserve_tokens, reward_shares, end_time, reward_rate, now)
        self._emit(PoolProgramAdded(pool_id, program.start_time, program.end_time, program.reward_rate))
        return program.copy()

    def remove_program(self, pool_id: str, caller: str = None) -> PoolProgram:
        with self._atomic('remove_program'):
            self._require_role(caller, ROLE_SUPERVISOR)
            program = self.registry.program(pool_id)
            if program is not None:
                self._settle_program(program)
            program = self.registry.remove_program(pool_id, self.clock.now())
            self._emit(PoolProgramRemoved(pool_id))
            return program

    def extend_program(self, pool_id: str, end_time: int, caller: str = None) -> PoolProgram:
        with self._atomic('extend_program'):
            self._require_role(caller, ROLE_SUPERVISOR)
            program = self.registry.extend_program(pool_id, end_time, self.clock.now())
            self._emit(PoolProgramExtended(pool_id, end_time))
            return program.copy()

    # settlement

    def _settle(self, pool_id: str, reserve_id: str, program: PoolProgram) -> PoolRewards:
        key = (pool_id, reserve_id)
        if key not in self.pool_rewards:
            self.pool_rewards[key] = PoolRewards()
        return settle(
            self.pool_rewards[key],
            program,
            reserve_id,
            self.ledger.total_staked_amount(pool_id, reserve_id),
            self.clock.now()
        )

    def _settle_program(self, program: PoolProgram) -> None:
        for reserve_id in program.reserve_tokens:
            self._settle(program.pool_id, reserve_id, program)

    def _provider_record(self, provider: str, pool_id: str, reserve_id: str) -> ProviderRewards:
        key = (provider, pool_id, reserve_id)
        if key not in self.provider_rewards:
            self.provider_rewards[key] = ProviderRewards()
            pools = self.provider_pool_index.setdefault(provider, [])
            if pool_id not in pools:
                pools.append(pool_id)
        return self.provider_rewards[key]

    def _update_rewards(self, provider: str, pool_id: str, reserve_id: str) -> ProviderRewards:
        program = self.registry.program(pool_id)
        pool_rewards = self._settle(pool_id, reserve_id, program)
        provider_rewards = self._provider_record(provider, pool_id, reserve_id)
        staked = self.ledger.provider_staked_amount(provider, pool_id, reserve_id)
        verify_base_rewards(
            base_rewards(provider_rewards, pool_rewards.reward_per_token, staked),
            provider_rewards,
            program,
            reserve_id,
            staked,
            self.ledger.total_staked_amount(pool_id, reserve_id),
            self.clock.now()
        )
        return update_provider_rewards(provider_rewards, pool_rewards.reward_per_token, staked)

    def _is_tracked(self, pool_id: str, reserve_id: str) -> bool:
        if (pool_id, reserve_id) in self.pool_rewards:
            return True
        program = self.registry.program(pool_id)
        return program is not None and reserve_id in program.reserve_tokens

    def _multiplier(self, provider: str, provider_rewards: ProviderRewards, program: PoolProgram) -> int:
        return rewards_multiplier(
            program,
            provider_rewards.effective_staking_time,
            self.checkpoints.checkpoint(provider),
            self.last_claim_times.get(provider, 0),
            self.clock.now()
        )

    def _position_rewards(self, provider: str, pool_id: str, reserve_id: str, program: PoolProgram) -> tuple:
        """
        Payable rewards, current multiplier and unsettled base rewards of one position, without changing state.
        """
        now = self.clock.now()
        pool_rewards = self.pool_rewards.get((pool_id, reserve_id)) or PoolRewards()
        provider_rewards = self.provider_rewards.get((provider, pool_id, reserve_id)) or ProviderRewards()
        total_staked = self.ledger.total_staked_amount(pool_id, reserve_id)
        staked = self.ledger.provider_staked_amount(provider, pool_id, reserve_id)
        fresh = base_rewards(
            provider_rewards, reward_per_token(pool_rewards, program, reserve_id, total_staked, now), staked
        )
        verify_base_rewards(fresh, provider_rewards, program, reserve_id, staked, total_staked, now)
        multiplier = self._multiplier(provider, provider_rewards, program)
        return full_rewards(provider_rewards, fresh, multiplier), multiplier, fresh

    def _provider_programs(self, provider: str, pool_ids: list[str] = None) -> list[PoolProgram]:
        if pool_ids is not None:
            require_unique(pool_ids)
            candidates = pool_ids
        else:
            candidates = list(self.provider_pool_index.get(provider, []))
            candidates += [pool_id for pool_id in self.ledger.provider_pools(provider) if pool_id not in candidates]
        programs = [self.registry.program(pool_id) for pool_id in candidates]
        return [program for program in programs if program is not None]

    # notifications

    def on_liquidity_added(self, provider: str, pool_id: str, reserve_id: str, amount: int, caller: str = None):
        with self._atomic('on_liquidity_added'):
            self._require_role(caller, ROLE_PUBLISHER)
            if not self._is_tracked(pool_id, reserve_id):
                return
            staked = self.ledger.provider_staked_amount(provider, pool_id, reserve_id)
            provider_rewards = self._update_rewards(provider, pool_id, reserve_id)
            if staked == 0 and amount > 0:
                provider_rewards.effective_staking_time = self.clock.now()

    def on_liquidity_removed(self, provider: str, pool_id: str, reserve_id: str, amount: int, caller: str = None):
        with self._atomic('on_liquidity_removed'):
            self._require_role(caller, ROLE_PUBLISHER)
            if not self._is_tracked(pool_id, reserve_id):
                return
            self._update_rewards(provider, pool_id, reserve_id)
            if amount > 0:
                self._freeze_all(provider)

    def on_checkpoint(self, provider: str, caller: str = None):
        with self._atomic('on_checkpoint'):
            self._require_role(caller, ROLE_PUBLISHER)
            self._freeze_all(provider)

    def _freeze_all(self, provider: str, skip_pools: list[str] = ()) -> None:
        now = self.clock.now()
        for program in self._provider_programs(provider):
            if program.pool_id in skip_pools:
                continue
            for reserve_id in program.reserve_tokens:
                provider_rewards = self._update_rewards(provider, program.pool_id, reserve_id)
                full, multiplier, _ = self._position_rewards(provider, program.pool_id, reserve_id, program)
                freeze_rewards(provider_rewards, full, multiplier, now)

    # queries

    def rewards(self, provider: str, pool_ids: list[str] = None) -> int:
        with self._lock:
            return sum([
                self._position_rewards(provider, program.pool_id, reserve_id, program)[0]
                for program in self._provider_programs(provider, pool_ids)
                for reserve_id in program.reserve_tokens
            ])

    def base_rewards(self, provider: str, pool_ids: list[str] = None) -> int:
        """
        Unmultiplied rewards accrued since the provider's positions were last updated.
        """
        with self._lock:
            return sum([
                self._position_rewards(provider, program.pool_id, reserve_id, program)[2]
                for program in self._provider_programs(provider, pool_ids)
                for reserve_id in program.reserve_tokens
            ])

    def total_claimed_rewards(self, provider: str) -> int:
        with self._lock:
            return sum([
                record.total_claimed_rewards for (account, _, _), record in self.provider_rewards.items()
                if account == provider
            ])

    def rewards_multiplier(self, provider: str, pool_id: str, reserve_id: str) -> int:
        with self._lock:
            program = self.registry.program(pool_id)
            if program is None or reserve_id not in program.reserve_tokens:
                raise NotParticipating(pool_id, reserve_id)
            provider_rewards = self.provider_rewards.get((provider, pool_id, reserve_id)) or ProviderRewards()
            return self._multiplier(provider, provider_rewards, program)

    def get_pool_rewards(self, pool_id: str, reserve_id: str) -> PoolRewards:
        with self._lock:
            return (self.pool_rewards.get((pool_id, reserve_id)) or PoolRewards()).copy()

    def get_provider_rewards(self, provider: str, pool_id: str, reserve_id: str) -> ProviderRewards:
        with self._lock:
            return (self.provider_rewards.get((provider, pool_id, reserve_id)) or ProviderRewards()).copy()

    def provider_pools(self, provider: str) -> list[str]:
        with self._lock:
            return [program.pool_id for program in self._provider_programs(provider)]

    def last_claim_time(self, provider: str) -> int:
        with self._lock:
            return self.last_claim_times.get(provider, 0)

    # claiming

    def update_rewards(self, providers: list[str]) -> None:
        with self._atomic('update_rewards'):
            for provider in dict.fromkeys(providers):
                for program in self._provider_programs(provider):
                    for reserve_id in program.reserve_tokens:
                        self._update_rewards(provider, program.pool_id, reserve_id)

    def claim_rewards(self, provider: str, pool_ids: list[str] = None, caller: str = None) -> int:
        with self._atomic('claim_rewards'):
            self._require_provider(caller, provider)
            amount = self._claim(provider, pool_ids, max_amount=None, reset_staking_time=True)
            if amount == 0:
                raise NoRewards(provider)
            if pool_ids is not None:
                # the claim time restarts every multiplier, so the pools left out keep theirs as debt
                self._freeze_all(provider, skip_pools=pool_ids)
            self._update_last_claim_time(provider)
            self.issuer.mint(provider, amount)
            self._emit(RewardsClaimed(provider, amount))
            logger.info('%s claimed %s', provider, amount)
            return amount

    def stake_rewards(self, provider: str, max_amount: int, pool_id: str, caller: str = None) -> tuple[int, int]:
        """
        Claim up to max_amount and deposit it as a new network token position in pool_id.
        Returns the staked amount and the new position id.
        """
        with self._atomic('stake_rewards'):
            self._require_provider(caller, provider)
            if max_amount <= 0:
                raise ValueError(f"Cannot stake {max_amount} rewards")
            network_token = self.config.network_token
            if network_token is None:
                raise ConfigurationError("Staking rewards requires a network token")
            amount = self._claim(provider, None, max_amount=max_amount, reset_staking_time=False)
            if amount == 0:
                raise NoRewards(provider)
            self._update_last_claim_time(provider)
            self.issuer.mint(self.unique_id, amount)
            position_id = self.sink.add_liquidity_for(provider, pool_id, network_token, amount)
            self._emit(RewardsStaked(provider, pool_id, amount, position_id))
            logger.info('%s staked %s rewards into %s (position %s)', provider, amount, pool_id, position_id)
            return amount, position_id

    def _claim(self, provider: str, pool_ids: list[str] or None, max_amount: int or None, reset_staking_time: bool) -> int:
        now = self.clock.now()
        reward = 0
        for program in self._provider_programs(provider, pool_ids):
            for reserve_id in program.reserve_tokens:
                provider_rewards = self._update_rewards(provider, program.pool_id, reserve_id)
                full, multiplier, _ = self._position_rewards(provider, program.pool_id, reserve_id, program)
                provider_rewards.base_rewards_debt = 0
                provider_rewards.base_rewards_debt_multiplier = 0

                if max_amount is not None:
                    if full > max_amount:
                        # the part that doesn't fit stays earned, frozen at the current multiplier
                        provider_rewards.base_rewards_debt = remove_multiplier(full - max_amount, multiplier)
                        provider_rewards.base_rewards_debt_multiplier = multiplier
                        full = max_amount
                    max_amount -= full

                self.pool_rewards[(program.pool_id, reserve_id)].total_claimed_rewards += full
                provider_rewards.pending_base_rewards = 0
                provider_rewards.total_claimed_rewards += full
                if reset_staking_time:
                    provider_rewards.effective_staking_time = now
                reward += full
        return reward

    def _update_last_claim_time(self, provider: str) -> None:
        now = self.clock.now()
        self.last_claim_times[provider] = now
        self._emit(LastClaimTimeUpdated(provider, now))
