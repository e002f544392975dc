import pytest

from stakingrewards.model.staking.config import ROLE_SUPERVISOR
from stakingrewards.model.staking.errors import ConfigurationError, NotParticipating, DuplicateInput, AccessDenied
from stakingrewards.model.staking.events import PoolProgramAdded, PoolProgramRemoved, PoolProgramExtended
from stakingrewards.model.staking.issuance import RoleGate
from stakingrewards.model.staking.programs import PoolProgram, ProgramRegistry
from stakingrewards.tests.utils import new_engine, engine_with_program, T0, DAY, WEEK, PPM


def test_add_program():
    engine, ledger, issuer, clock = new_engine()
    program = engine.add_program('POOL1', ['BNT', 'TKN'], [700000, 300000], T0 + WEEK, 1000)
    assert program.start_time == T0
    assert program.end_time == T0 + WEEK
    assert program.reward_share('BNT') == 700000
    assert program.reward_share('TKN') == 300000
    assert program.reward_share('XYZ') == 0
    assert engine.is_participating('POOL1')
    assert engine.is_reserve_participating('POOL1', 'TKN')
    assert not engine.is_reserve_participating('POOL1', 'XYZ')
    assert not engine.is_participating('POOL2')
    assert engine.events == [PoolProgramAdded('POOL1', T0, T0 + WEEK, 1000)]


@pytest.mark.parametrize('reserve_tokens, reward_shares, end_time, reward_rate', [
    (['BNT', 'TKN'], [500000, 400000], T0 + WEEK, 1000),
    (['BNT', 'TKN'], [PPM + 1, -1], T0 + WEEK, 1000),
    (['BNT', 'TKN'], [PPM], T0 + WEEK, 1000),
    (['BNT', 'TKN'], [PPM, 0], T0, 1000),
    (['BNT', 'TKN'], [PPM, 0], T0 - 1, 1000),
    (['BNT', 'TKN'], [PPM, 0], T0 + WEEK, 0),
    (['BNT', 'BNT'], [PPM, 0], T0 + WEEK, 1000),
    (['BNT', 'TKN', 'ETH'], [PPM, 0, 0], T0 + WEEK, 1000),
    ([], [], T0 + WEEK, 1000),
    (['ETH', 'TKN'], [PPM, 0], T0 + WEEK, 1000),
])
def test_add_program_invalid(reserve_tokens, reward_shares, end_time, reward_rate):
    engine, ledger, issuer, clock = new_engine()
    with pytest.raises(ConfigurationError):
        engine.add_program('POOL1', reserve_tokens, reward_shares, end_time, reward_rate)
    assert engine.programs() == []
    assert engine.events == []


def test_configuration_error_is_value_error():
    registry = ProgramRegistry()
    with pytest.raises(ValueError):
        registry.add_program('POOL1', ['ETH', 'TKN'], [1, 2], T0 + 1, 1, now=T0)


def test_registry_without_network_token():
    registry = ProgramRegistry()
    program = registry.add_program('POOL1', ['ETH'], [PPM], T0 + DAY, 5, now=T0)
    assert program.reserve_tokens == ('ETH',)
    assert registry.is_participating('POOL1', T0 + DAY - 1)
    assert not registry.is_participating('POOL1', T0 + DAY)


def test_add_program_already_participating():
    engine, ledger, issuer, clock = engine_with_program()
    with pytest.raises(ConfigurationError):
        engine.add_program('POOL1', ['BNT', 'TKN'], [PPM, 0], T0 + 20 * WEEK, 5)


def test_readd_lapsed_program():
    engine, ledger, issuer, clock = engine_with_program(duration=WEEK)
    clock.advance(2 * WEEK)
    assert not engine.is_participating('POOL1')
    assert engine.program('POOL1') is not None
    program = engine.add_program('POOL1', ['BNT', 'TKN'], [0, PPM], clock.now() + WEEK, 77)
    assert program.start_time == T0 + 2 * WEEK
    assert program.reward_rate == 77
    assert engine.is_participating('POOL1')


def test_remove_program():
    engine, ledger, issuer, clock = engine_with_program()
    removed = engine.remove_program('POOL1')
    assert removed.pool_id == 'POOL1'
    assert engine.program('POOL1') is None
    assert engine.events[-1] == PoolProgramRemoved('POOL1')
    with pytest.raises(NotParticipating):
        engine.remove_program('POOL1')


def test_remove_lapsed_program():
    engine, ledger, issuer, clock = engine_with_program(duration=DAY)
    clock.advance(DAY)
    with pytest.raises(NotParticipating):
        engine.remove_program('POOL1')
    # lapsed programs keep their history
    assert engine.program('POOL1').end_time == T0 + DAY


def test_extend_program():
    engine, ledger, issuer, clock = engine_with_program(duration=WEEK)
    program = engine.extend_program('POOL1', T0 + 2 * WEEK)
    assert program.end_time == T0 + 2 * WEEK
    assert engine.program('POOL1').end_time == T0 + 2 * WEEK
    assert engine.events[-1] == PoolProgramExtended('POOL1', T0 + 2 * WEEK)
    with pytest.raises(ConfigurationError):
        engine.extend_program('POOL1', T0 + 2 * WEEK)
    with pytest.raises(ConfigurationError):
        engine.extend_program('POOL1', T0 + WEEK)
    with pytest.raises(NotParticipating):
        engine.extend_program('POOL2', T0 + 3 * WEEK)
    clock.advance(2 * WEEK)
    with pytest.raises(NotParticipating):
        engine.extend_program('POOL1', T0 + 3 * WEEK)


def test_add_programs():
    engine, ledger, issuer, clock = new_engine()
    programs = engine.add_programs([
        {'pool_id': 'POOL1', 'reserve_tokens': ['BNT', 'TKN'], 'reward_shares': [PPM, 0],
         'end_time': T0 + WEEK, 'reward_rate': 10},
        {'pool_id': 'POOL2', 'reserve_tokens': ['BNT', 'ETH'], 'reward_shares': [PPM // 2, PPM // 2],
         'end_time': T0 + WEEK, 'reward_rate': 20},
    ])
    assert [program.pool_id for program in programs] == ['POOL1', 'POOL2']
    assert len(engine.events) == 2


def test_add_programs_duplicate():
    engine, ledger, issuer, clock = new_engine()
    program = {'pool_id': 'POOL1', 'reserve_tokens': ['BNT', 'TKN'], 'reward_shares': [PPM, 0],
               'end_time': T0 + WEEK, 'reward_rate': 10}
    with pytest.raises(DuplicateInput):
        engine.add_programs([program, dict(program)])
    assert engine.programs() == []


def test_add_programs_all_or_nothing():
    engine, ledger, issuer, clock = new_engine()
    with pytest.raises(ConfigurationError):
        engine.add_programs([
            {'pool_id': 'POOL1', 'reserve_tokens': ['BNT', 'TKN'], 'reward_shares': [PPM, 0],
             'end_time': T0 + WEEK, 'reward_rate': 10},
            {'pool_id': 'POOL2', 'reserve_tokens': ['BNT', 'ETH'], 'reward_shares': [PPM, 0],
             'end_time': T0 + WEEK, 'reward_rate': 0},
        ])
    assert engine.programs() == []
    assert engine.events == []


def test_admin_role_gate():
    gate = RoleGate({ROLE_SUPERVISOR: ['admin']})
    engine, ledger, issuer, clock = new_engine(role_gate=gate)
    with pytest.raises(AccessDenied):
        engine.add_program('POOL1', ['BNT', 'TKN'], [PPM, 0], T0 + WEEK, 1, caller='mallory')
    with pytest.raises(PermissionError):
        engine.add_program('POOL1', ['BNT', 'TKN'], [PPM, 0], T0 + WEEK, 1)
    engine.add_program('POOL1', ['BNT', 'TKN'], [PPM, 0], T0 + WEEK, 1, caller='admin')
    with pytest.raises(AccessDenied):
        engine.extend_program('POOL1', T0 + 2 * WEEK, caller='mallory')
    with pytest.raises(AccessDenied):
        engine.remove_program('POOL1', caller='mallory')
    gate.revoke_role(ROLE_SUPERVISOR, 'admin')
    with pytest.raises(AccessDenied):
        engine.remove_program('POOL1', caller='admin')
    gate.grant_role(ROLE_SUPERVISOR, 'admin')
    engine.remove_program('POOL1', caller='admin')


def test_program_serialization():
    program = PoolProgram('POOL1', ['BNT', 'TKN'], [1, PPM - 1], T0, T0 + 1, 3)
    if PoolProgram.from_dict(program.to_dict()) != program:
        raise
    copy = program.copy()
    copy.end_time += 1
    if copy == program:
        raise
