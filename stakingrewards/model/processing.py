import json
import os
import time

from .staking.agents import Agent
from .staking.clock import Clock, ManualClock
from .staking.config import Config
from .staking.global_state import GlobalState
from .staking.issuance import TokenIssuer, RoleGate
from .staking.liquidity import LiquidityLedger, CheckpointStore
from .staking.pool_rewards import PoolRewards
from .staking.programs import PoolProgram
from .staking.provider_rewards import ProviderRewards
from .staking.staking_rewards import StakingRewards


def engine_to_dict(engine: StakingRewards) -> dict:
    """
    Persisted layout: programs, per (pool, reserve) accumulators, per (provider, pool, reserve) positions,
    and last claim times.
    """
    return {
        'programs': [program.to_dict() for program in engine.registry.programs.values()],
        'pool_rewards': [
            {'pool_id': pool_id, 'reserve_id': reserve_id, **record.to_dict()}
            for (pool_id, reserve_id), record in engine.pool_rewards.items()
        ],
        'provider_rewards': [
            {'provider': provider, 'pool_id': pool_id, 'reserve_id': reserve_id, **record.to_dict()}
            for (provider, pool_id, reserve_id), record in engine.provider_rewards.items()
        ],
        'last_claim_times': dict(engine.last_claim_times)
    }


def engine_from_dict(
        json_state: dict,
        ledger: LiquidityLedger,
        issuer: TokenIssuer,
        clock: Clock = None,
        role_gate: RoleGate = None,
        config: Config = None
) -> StakingRewards:
    engine = StakingRewards(ledger=ledger, issuer=issuer, clock=clock, role_gate=role_gate, config=config)
    for program in json_state['programs']:
        engine.registry.programs[program['pool_id']] = PoolProgram.from_dict(program)
    for record in json_state['pool_rewards']:
        record = dict(record)
        key = (record.pop('pool_id'), record.pop('reserve_id'))
        engine.pool_rewards[key] = PoolRewards.from_dict(record)
    for record in json_state['provider_rewards']:
        record = dict(record)
        key = (record.pop('provider'), record.pop('pool_id'), record.pop('reserve_id'))
        engine.provider_rewards[key] = ProviderRewards.from_dict(record)
        pools = engine.provider_pool_index.setdefault(key[0], [])
        if key[1] not in pools:
            pools.append(key[1])
    engine.last_claim_times = {k: int(v) for k, v in json_state['last_claim_times'].items()}
    return engine


def save_engine(engine: StakingRewards, path: str = './archive', filename: str = '') -> str:
    filename = filename or f'staking_rewards_savefile_{time.time()}.json'
    os.makedirs(path, exist_ok=True)
    with open(os.path.join(path, filename), 'w+') as output_file:
        json.dump(engine_to_dict(engine), output_file)
    return filename


def load_engine(
        ledger: LiquidityLedger,
        issuer: TokenIssuer,
        clock: Clock = None,
        path: str = './archive',
        filename: str = '',
        config: Config = None
) -> StakingRewards:
    if filename:
        file_ls = [filename] if os.path.exists(os.path.join(path, filename)) else []
    else:
        file_ls = list(filter(lambda file: file.startswith('staking_rewards_savefile'), os.listdir(path)))
    for filename in reversed(sorted(file_ls)):  # by default, load the latest first
        with open(os.path.join(path, filename), 'r') as input_file:
            json_state = json.load(input_file)
        return engine_from_dict(json_state, ledger=ledger, issuer=issuer, clock=clock, config=config)
    raise FileNotFoundError(f'Staking rewards file not found in {path}.')


def load_scenario(scenario: dict, config: Config = None) -> tuple[GlobalState, list[dict]]:
    """
    scenario should be in the form of:
    {
        'start_time': timestamp,
        'time_step_seconds': seconds,
        'agents': {agent_id: {token: quantity}},
        'events': [{'time': timestamp, 'type': action_type, ...}]
    }
    Returns the initial state and its event log, ready for run.replay.
    """
    clock = ManualClock(scenario.get('start_time', 0))
    ledger = LiquidityLedger(clock=clock, checkpoints=CheckpointStore())
    config = config or Config(network_token=scenario.get('network_token'))
    issuer = TokenIssuer(token=scenario.get('reward_token', config.reward_token))
    engine = StakingRewards(ledger=ledger, issuer=issuer, clock=clock, config=config)
    agents = {
        agent_id: Agent(holdings=holdings, enforce_holdings=False)
        for agent_id, holdings in scenario.get('agents', {}).items()
    }
    state = GlobalState(
        agents=agents,
        engine=engine,
        time_step_seconds=scenario.get('time_step_seconds', 24 * 60 * 60)
    )
    return state, scenario.get('events', [])
