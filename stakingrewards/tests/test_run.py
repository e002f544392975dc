import pytest

from stakingrewards.model import run
from stakingrewards.model.processing import load_scenario
from stakingrewards.model.staking.agents import Agent
from stakingrewards.model.staking.global_state import GlobalState, ArchiveState
from stakingrewards.model.staking.staking_strategies import (
    StakingStrategy, provide_once, claim_every, stake_rewards_every, withdraw_at, schedule_actions
)
from stakingrewards.tests.utils import engine_with_program, T0, DAY, WEEK, PPM


def initial_state(strategy, archive_all: bool = True, holdings: dict = None) -> GlobalState:
    engine, ledger, issuer, clock = engine_with_program(reward_token='REWARD')
    return GlobalState(
        agents={'alice': Agent(holdings=holdings or {'BNT': 10 ** 6}, staking_strategy=strategy)},
        engine=engine,
        time_step_seconds=DAY,
        archive_all=archive_all
    )


def test_claim_every_week():
    state = initial_state(provide_once('POOL1', 'BNT', 10 ** 6) + claim_every(7))
    events = run.run(state, time_steps=14, silent=True)
    assert len(events) == 14
    final_state = events[-1]
    # six days at 1x, then a full week at 1.25x
    expected = 6 * DAY * 1000 + 7 * DAY * 1250
    assert final_state.agents['alice'].get_holdings('REWARD') == expected
    assert final_state.engine.total_claimed_rewards('alice') == expected
    assert final_state.agents['alice'].get_holdings('BNT') == 0
    assert final_state.clock.now() == T0 + 14 * DAY
    assert events[6].agents['alice'].get_holdings('REWARD') == 6 * DAY * 1000

    # the initial state is left as it was
    assert state.clock.now() == T0
    assert state.agents['alice'].get_holdings('BNT') == 10 ** 6
    assert state.ledger.provider_staked_amount('alice', 'POOL1', 'BNT') == 0


def test_stake_rewards_every_week():
    state = initial_state(provide_once('POOL1', 'BNT', 10 ** 6) + stake_rewards_every('POOL1', 7))
    events = run.run(state, time_steps=7, silent=True)
    final_state = events[-1]
    staked = 6 * DAY * 1000
    assert final_state.engine.total_claimed_rewards('alice') == staked
    assert final_state.ledger.provider_staked_amount('alice', 'POOL1', 'BNT') == 10 ** 6 + staked
    assert len(final_state.ledger.provider_positions('alice')) == 2
    assert final_state.agents['alice'].get_holdings('REWARD') == 0
    assert final_state.engine.issuer.balance('staking_rewards') == staked
    assert final_state.rewards('alice') == 0


def test_withdraw_at():
    state = initial_state(provide_once('POOL1', 'BNT', 10 ** 6) + withdraw_at(3), archive_all=False)
    events = run.run(state, time_steps=6, silent=True)
    assert all(isinstance(event, ArchiveState) for event in events)
    assert events[1].rewards['alice'] == DAY * 1000
    # frozen on withdrawal
    assert events[2].rewards['alice'] == 2 * DAY * 1000
    assert events[5].rewards['alice'] == 2 * DAY * 1000
    assert events[5].agents['alice'].holdings['BNT'] == 10 ** 6
    assert events[5].time == T0 + 6 * DAY


def test_schedule_actions():
    strategy = schedule_actions([
        [{'type': 'add_liquidity', 'pool_id': 'POOL1', 'reserve_id': 'BNT', 'amount': 1000}],
        [],
        [{'type': 'claim_rewards'}, {'type': 'claim_rewards'}]
    ])
    state = initial_state(strategy)
    events = run.run(state, time_steps=5, silent=True)
    assert events[-1].agents['alice'].get_holdings('REWARD') == 2 * DAY * 1000
    assert events[-1].agents['alice'].get_holdings('BNT') == 10 ** 6 - 1000
    assert events[-1].rewards('alice') == 2 * DAY * 1000


def test_insufficient_holdings():
    state = initial_state(provide_once('POOL1', 'BNT', 10 ** 6 + 1))
    with pytest.raises(ValueError):
        run.run(state, time_steps=1, silent=True)


def test_unknown_action():
    state = initial_state(None)
    with pytest.raises(ValueError):
        state.execute_action({'type': 'swap', 'provider': 'alice'})


def scenario() -> dict:
    return {
        'start_time': T0,
        'network_token': 'BNT',
        'agents': {'alice': {'BNT': 10 ** 6}},
        'events': [
            {'time': T0, 'type': 'add_program', 'pool_id': 'POOL1', 'reserve_tokens': ['BNT', 'TKN'],
             'reward_shares': [PPM, 0], 'end_time': T0 + 4 * WEEK, 'weekly_rewards': '604800000', 'decimals': 0},
            {'time': T0, 'type': 'add_liquidity', 'provider': 'alice', 'pool_id': 'POOL1', 'reserve_id': 'BNT',
             'amount': 1000},
            {'time': T0 + DAY, 'type': 'rewards', 'provider': 'alice'},
            {'time': T0 + 2 * DAY, 'type': 'claim_rewards', 'provider': 'alice'},
            {'time': T0 + 3 * DAY, 'type': 'remove_liquidity', 'provider': 'alice', 'position_id': 1},
            {'time': T0 + 4 * DAY, 'type': 'rewards', 'provider': 'alice'},
            {'time': T0 + 4 * DAY, 'type': 'claim_rewards', 'provider': 'bob'},
        ]
    }


def test_replay():
    state, events = load_scenario(scenario())
    results, final_state = run.replay(state, events)
    assert [result['type'] for result in results] == [event['type'] for event in events]
    assert results[0]['result']['reward_rate'] == 1000
    assert results[1]['result'] == 1
    assert results[2]['result'] == DAY * 1000
    assert results[3]['result'] == 2 * DAY * 1000
    assert results[4]['result'] == 1000
    assert results[5]['result'] == DAY * 1000
    # bob never provided anything
    assert results[6]['result'] == 0
    assert final_state.agents['alice'].get_holdings('REWARD') == 2 * DAY * 1000
    assert final_state.agents['alice'].get_holdings('BNT') == 10 ** 6
    assert 'bob' in final_state.agents
    assert final_state.clock.now() == T0 + 4 * DAY
    assert state.clock.now() == T0
    assert state.engine.programs() == []


def test_replay_out_of_order():
    events = [
        {'time': T0 + DAY, 'type': 'rewards', 'provider': 'alice'},
        {'time': T0, 'type': 'rewards', 'provider': 'alice'},
    ]
    state, _ = load_scenario(scenario())
    with pytest.raises(ValueError):
        run.replay(state, events)


def test_summarize():
    from stakingrewards.__main__ import summarize
    state, events = load_scenario(scenario())
    results, final_state = run.replay(state, events)
    summary = summarize(final_state, decimals=3)
    assert summary['alice']['claimed'] == '172800.0'
    assert summary['alice']['payable'] == '86400.0'
    assert summary['alice']['pools'] == ['POOL1']
    assert summary['bob'] == {'payable': '0.0', 'claimed': '0.0', 'pools': []}


def test_strategy_schedule():
    steps = []

    def record(state, agent_id):
        steps.append(state.time_step)
        return state

    state = initial_state(
        StakingStrategy(record, name='every third step', period=3, start_step=2)
        + StakingStrategy(record, name='twice', max_runs=2)
    )
    run.run(state, time_steps=8, silent=True)
    assert steps == [1, 2, 2, 5, 8]

    with pytest.raises(ValueError):
        StakingStrategy(record, name='never', period=0)
    with pytest.raises(TypeError):
        StakingStrategy(record, name='bad') + record


def test_strategy_must_return_state():
    state = initial_state(StakingStrategy(lambda state, agent_id: None, name='broken'))
    with pytest.raises(ValueError):
        run.run(state, time_steps=1, silent=True)
