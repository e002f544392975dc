import copy
from typing import Callable

from .agents import Agent, AgentArchiveState
from .clock import ManualClock
from .config import weekly_rewards_to_rate
from .errors import NoRewards
from .staking_rewards import StakingRewards


class GlobalState:
    def __init__(self,
                 agents: dict[str: Agent],
                 engine: StakingRewards,
                 time_step_seconds: int = 24 * 60 * 60,
                 evolve_function: Callable = None,
                 archive_all: bool = True
                 ):
        if not isinstance(engine.clock, ManualClock):
            raise ValueError("GlobalState needs an engine driven by a ManualClock")
        self.agents = agents
        for agent_name in self.agents:
            self.agents[agent_name].unique_id = agent_name
        self.engine = engine
        # minted rewards land in the same agent objects
        for agent_name, agent in self.agents.items():
            engine.issuer.agents[agent_name] = agent
        self.time_step_seconds = time_step_seconds
        self._evolve_function = evolve_function
        self.evolve_function = evolve_function.__name__ if evolve_function else 'None'
        self.time_step = 0
        self.archive_all = archive_all

    @property
    def ledger(self):
        return self.engine.ledger

    @property
    def clock(self) -> ManualClock:
        return self.engine.clock

    def __repr__(self):
        newline = '\n'
        indent = '    '
        return (
            f'global state {newline}'
            f'time step: {self.time_step} (t = {self.clock.now()}){newline}'
            f'agents: {newline}{newline}    ' +
            ((newline + indent).join([
                (newline + indent).join(repr(agent).split('\n')) for agent in self.agents.values()
            ])) + newline +
            f'{repr(self.engine)}{newline}'
            f'evolution function: {self.evolve_function}{newline}'
        )

    def copy(self):
        # engine, ledger, issuer and clock reference each other, so they are copied together
        copy_state = copy.copy(self)
        copy_state.engine = copy.deepcopy(self.engine)
        copy_state.agents = {
            agent_id: copy_state.engine.issuer.agents.get(agent_id) or self.agents[agent_id].copy()
            for agent_id in self.agents
        }
        return copy_state

    def archive(self):
        if self.archive_all:
            return self.copy()
        else:
            return ArchiveState(self)

    def evolve(self):
        self.time_step += 1
        self.clock.advance(self.time_step_seconds)
        for agent_id in self.agents:
            agent = self.agents[agent_id]
            if agent.staking_strategy:
                agent.staking_strategy.execute(self, agent_id)
        if self._evolve_function:
            return self._evolve_function(self)

    def rewards(self, agent_id: str) -> int:
        return self.engine.rewards(agent_id)

    def add_liquidity(self, agent_id: str, pool_id: str, reserve_id: str, amount: int) -> int:
        agent = self.agents[agent_id]
        agent.transfer_from(reserve_id, amount)
        try:
            return self.ledger.add_liquidity(agent_id, pool_id, reserve_id, amount)
        except Exception:
            agent.transfer_to(reserve_id, amount)
            raise

    def remove_liquidity(self, agent_id: str, position_id: int, amount: int = None) -> int:
        position = self.ledger.positions.get(position_id)
        if position is None or position['provider'] != agent_id:
            raise ValueError(f"Agent {agent_id} does not own position {position_id}")
        removed = self.ledger.remove_liquidity(position_id, amount)
        self.agents[agent_id].transfer_to(position['reserve_id'], removed)
        return removed

    def remove_all_liquidity(self, agent_id: str, pool_id: str = None) -> int:
        removed = 0
        for position_id, position in self.ledger.provider_positions(agent_id).items():
            if pool_id is None or position['pool_id'] == pool_id:
                removed += self.remove_liquidity(agent_id, position_id)
        return removed

    def claim_rewards(self, agent_id: str) -> int:
        """
        Claim everything payable. Returns 0 instead of failing when there is nothing to claim.
        """
        try:
            return self.engine.claim_rewards(agent_id)
        except NoRewards:
            return 0

    def stake_rewards(self, agent_id: str, pool_id: str, max_amount: int = None) -> int:
        payable = self.engine.rewards(agent_id)
        if payable == 0:
            return 0
        amount, position_id = self.engine.stake_rewards(agent_id, max_amount or payable, pool_id)
        return amount

    def execute_action(self, action: dict):
        """
        Apply one action at the current time and return its result.
        action should be in the form of:
        {
            'type': action_type,
            ...action parameters
        }
        """
        action_type = action.get('type')
        if action_type in ('add_liquidity', 'remove_liquidity', 'claim_rewards', 'stake_rewards', 'checkpoint'):
            if action['provider'] not in self.agents:
                self.agents[action['provider']] = Agent(unique_id=action['provider'], enforce_holdings=False)
                self.engine.issuer.agents[action['provider']] = self.agents[action['provider']]

        if action_type == 'add_program':
            reward_rate = action.get('reward_rate')
            if reward_rate is None:
                reward_rate = weekly_rewards_to_rate(action['weekly_rewards'], action.get('decimals', 18))
            return self.engine.add_program(
                pool_id=action['pool_id'],
                reserve_tokens=action['reserve_tokens'],
                reward_shares=action['reward_shares'],
                end_time=action['end_time'],
                reward_rate=reward_rate,
                caller=action.get('caller')
            ).to_dict()
        elif action_type == 'remove_program':
            return self.engine.remove_program(action['pool_id'], caller=action.get('caller')).to_dict()
        elif action_type == 'extend_program':
            return self.engine.extend_program(
                action['pool_id'], action['end_time'], caller=action.get('caller')
            ).to_dict()
        elif action_type == 'add_liquidity':
            return self.add_liquidity(action['provider'], action['pool_id'], action['reserve_id'], action['amount'])
        elif action_type == 'remove_liquidity':
            if 'position_id' in action:
                return self.remove_liquidity(action['provider'], action['position_id'], action.get('amount'))
            return self.remove_all_liquidity(action['provider'], action.get('pool_id'))
        elif action_type == 'claim_rewards':
            return self.claim_rewards(action['provider'])
        elif action_type == 'stake_rewards':
            return self.stake_rewards(action['provider'], action['pool_id'], action.get('max_amount'))
        elif action_type == 'update_rewards':
            self.engine.update_rewards(action['providers'])
            return None
        elif action_type == 'checkpoint':
            self.engine.on_checkpoint(action['provider'], caller=action.get('caller'))
            return None
        elif action_type == 'rewards':
            return self.engine.rewards(action['provider'], action.get('pool_ids'))
        else:
            raise ValueError(f"Unknown action type {action_type}")


class ArchiveState:
    def __init__(self, state: GlobalState):
        self.time_step = state.time_step
        self.time = state.clock.now()
        self.agents = {k: AgentArchiveState(v) for (k, v) in state.agents.items()}
        self.rewards = {k: state.engine.rewards(k) for k in state.agents}
        self.engine = state.engine.snapshot()
