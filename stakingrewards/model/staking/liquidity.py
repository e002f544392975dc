import copy
import logging

from .clock import Clock

logger = logging.getLogger(__name__)


class CheckpointStore:
    def __init__(self, checkpoints: dict[str: int] = None):
        """
        Last recorded full-removal time per provider.
        """
        self.checkpoints = dict(checkpoints) if checkpoints else {}

    def checkpoint(self, provider: str) -> int:
        return self.checkpoints.get(provider, 0)

    def set_checkpoint(self, provider: str, time: int) -> None:
        if time < self.checkpoint(provider):
            raise ValueError(f"Checkpoint for {provider} cannot move back to {time}")
        self.checkpoints[provider] = time


class LiquidityLedger:
    """
    In-memory liquidity position bookkeeping.

    Every listener (normally a StakingRewards engine) is notified of a stake change
    before the change is applied, so the engine can settle against the old amounts.
    Removals record a checkpoint for the provider once applied.
    """
    unique_id = 'liquidity_ledger'

    def __init__(self, clock: Clock, checkpoints: CheckpointStore = None):
        self.clock = clock
        self.checkpoints = checkpoints or CheckpointStore()
        self.positions: dict[int: dict] = {}
        self.provider_amounts: dict[tuple: int] = {}
        self.total_amounts: dict[tuple: int] = {}
        self.next_position_id = 1
        self.listeners = []

    def subscribe(self, listener) -> None:
        if listener not in self.listeners:
            self.listeners.append(listener)

    def snapshot(self) -> dict:
        return {
            'positions': copy.deepcopy(self.positions),
            'provider_amounts': dict(self.provider_amounts),
            'total_amounts': dict(self.total_amounts),
            'next_position_id': self.next_position_id,
            'checkpoints': dict(self.checkpoints.checkpoints)
        }

    def restore(self, snapshot: dict) -> None:
        self.positions = snapshot['positions']
        self.provider_amounts = snapshot['provider_amounts']
        self.total_amounts = snapshot['total_amounts']
        self.next_position_id = snapshot['next_position_id']
        self.checkpoints.checkpoints = snapshot['checkpoints']

    def provider_staked_amount(self, provider: str, pool_id: str, reserve_id: str) -> int:
        return self.provider_amounts.get((provider, pool_id, reserve_id), 0)

    def total_staked_amount(self, pool_id: str, reserve_id: str) -> int:
        return self.total_amounts.get((pool_id, reserve_id), 0)

    def provider_pools(self, provider: str) -> list[str]:
        pools = []
        for (account, pool_id, reserve_id), amount in self.provider_amounts.items():
            if account == provider and amount > 0 and pool_id not in pools:
                pools.append(pool_id)
        return pools

    def provider_positions(self, provider: str) -> dict[int: dict]:
        return {
            position_id: dict(position) for position_id, position in self.positions.items()
            if position['provider'] == provider and position['amount'] > 0
        }

    def add_liquidity(self, provider: str, pool_id: str, reserve_id: str, amount: int) -> int:
        """
        Open a new position and return its id.
        """
        if amount < 0:
            raise ValueError(f"Cannot add negative liquidity {amount}")
        for listener in self.listeners:
            listener.on_liquidity_added(provider, pool_id, reserve_id, amount, caller=self.unique_id)
        position_id = self.next_position_id
        self.next_position_id += 1
        self.positions[position_id] = {
            'provider': provider, 'pool_id': pool_id, 'reserve_id': reserve_id, 'amount': amount
        }
        self._change(provider, pool_id, reserve_id, amount)
        logger.debug('position %s: %s added %s %s to %s', position_id, provider, amount, reserve_id, pool_id)
        return position_id

    def add_liquidity_for(self, provider: str, pool_id: str, reserve_id: str, amount: int) -> int:
        return self.add_liquidity(provider, pool_id, reserve_id, amount)

    def remove_liquidity(self, position_id: int, amount: int = None) -> int:
        """
        Remove `amount` from a position, or all of it when amount is None. Returns the amount removed.
        """
        if position_id not in self.positions:
            raise ValueError(f"Unknown position {position_id}")
        position = self.positions[position_id]
        if amount is None:
            amount = position['amount']
        if amount < 0 or amount > position['amount']:
            raise ValueError(f"Cannot remove {amount} from position {position_id} holding {position['amount']}")
        provider, pool_id, reserve_id = position['provider'], position['pool_id'], position['reserve_id']
        for listener in self.listeners:
            listener.on_liquidity_removed(provider, pool_id, reserve_id, amount, caller=self.unique_id)
        position['amount'] -= amount
        self._change(provider, pool_id, reserve_id, -amount)
        if amount > 0:
            self.checkpoints.set_checkpoint(provider, self.clock.now())
        logger.debug('position %s: %s removed %s %s from %s', position_id, provider, amount, reserve_id, pool_id)
        return amount

    def _change(self, provider: str, pool_id: str, reserve_id: str, delta: int) -> None:
        key = (provider, pool_id, reserve_id)
        self.provider_amounts[key] = self.provider_amounts.get(key, 0) + delta
        self.total_amounts[(pool_id, reserve_id)] = self.total_amounts.get((pool_id, reserve_id), 0) + delta
