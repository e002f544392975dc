from typing import Callable

from .global_state import GlobalState


class StakingStrategy:
    def __init__(
            self,
            strategy_function: Callable[[GlobalState, str], GlobalState],
            name: str,
            period: int = 1,
            start_step: int = 1,
            max_runs: int = None
    ):
        """
        Acts on time steps start_step, start_step + period, ... and stops after max_runs actions.
        """
        if period < 1:
            raise ValueError(f"Strategy period must be at least one step, got {period}")
        self.function = strategy_function
        self.name = name
        self.period = period
        self.start_step = start_step
        self.max_runs = max_runs
        self.runs = 0

    def is_due(self, time_step: int) -> bool:
        if self.max_runs is not None and self.runs >= self.max_runs:
            return False
        return time_step >= self.start_step and (time_step - self.start_step) % self.period == 0

    def execute(self, state: GlobalState, agent_id: str) -> GlobalState:
        if not self.is_due(state.time_step):
            return state
        self.runs += 1
        if self.function(state, agent_id) is not state:
            raise ValueError(f"Strategy '{self.name}' must act on the state it is given")
        return state

    def __add__(self, other):
        if not isinstance(other, StakingStrategy):
            return NotImplemented

        def both(state: GlobalState, agent_id: str) -> GlobalState:
            return other.execute(self.execute(state, agent_id), agent_id)

        return StakingStrategy(both, name=f'{self.name} + {other.name}')


def provide_once(pool_id: str, reserve_id: str, amount: int) -> StakingStrategy:

    def strategy(state: GlobalState, agent_id: str):
        state.add_liquidity(agent_id, pool_id, reserve_id, amount)
        return state

    return StakingStrategy(strategy, name=f'provide once ({amount} {reserve_id} to {pool_id})', max_runs=1)


def claim_every(period: int) -> StakingStrategy:
    """
    Claim all rewards every `period` time steps.
    """

    def strategy(state: GlobalState, agent_id: str):
        state.claim_rewards(agent_id)
        return state

    return StakingStrategy(strategy, name=f'claim every {period} steps', period=period, start_step=period)


def stake_rewards_every(pool_id: str, period: int, max_amount: int = None) -> StakingStrategy:

    def strategy(state: GlobalState, agent_id: str):
        state.stake_rewards(agent_id, pool_id, max_amount)
        return state

    return StakingStrategy(
        strategy, name=f'stake rewards into {pool_id} every {period} steps', period=period, start_step=period
    )


def withdraw_at(time_step: int, pool_id: str = None) -> StakingStrategy:

    def strategy(state: GlobalState, agent_id: str):
        state.remove_all_liquidity(agent_id, pool_id)
        return state

    return StakingStrategy(strategy, name=f'withdraw at step {time_step}', start_step=time_step, max_runs=1)


def schedule_actions(actions: list[list[dict]]) -> StakingStrategy:
    """
    actions should be a list with one entry per time step, each a list of actions in the form of:
    {
        'type': 'add_liquidity', 'pool_id': pool_id, 'reserve_id': reserve_id, 'amount': amount
    }
    Any action understood by GlobalState.execute_action can be scheduled. The acting agent is filled in as provider.
    """
    def strategy(state: GlobalState, agent_id: str):
        for action in actions[state.time_step - 1] or []:
            state.execute_action({'provider': agent_id, **action})
        return state

    return StakingStrategy(strategy, name=f'scheduled actions ({len(actions)} steps)', max_runs=len(actions))
