from stakingrewards.model.staking.clock import ManualClock
from stakingrewards.model.staking.config import Config
from stakingrewards.model.staking.issuance import TokenIssuer, RoleGate
from stakingrewards.model.staking.liquidity import LiquidityLedger, CheckpointStore
from stakingrewards.model.staking.staking_rewards import StakingRewards

T0 = 1_600_000_000
DAY = 24 * 60 * 60
WEEK = 7 * DAY
PPM = 1_000_000


def new_engine(
        start_time: int = T0,
        network_token: str = 'BNT',
        reward_token: str = 'BNT',
        mint_cap: int = None,
        role_gate: RoleGate = None
):
    clock = ManualClock(start_time)
    ledger = LiquidityLedger(clock=clock, checkpoints=CheckpointStore())
    issuer = TokenIssuer(token=reward_token, mint_cap=mint_cap)
    engine = StakingRewards(
        ledger=ledger,
        issuer=issuer,
        clock=clock,
        role_gate=role_gate,
        config=Config(network_token=network_token)
    )
    return engine, ledger, issuer, clock


def engine_with_program(
        reward_rate: int = 1000,
        duration: int = 12 * WEEK,
        reward_shares: list = None,
        **kwargs
):
    engine, ledger, issuer, clock = new_engine(**kwargs)
    engine.add_program(
        pool_id='POOL1',
        reserve_tokens=['BNT', 'TKN'],
        reward_shares=reward_shares or [PPM, 0],
        end_time=clock.now() + duration,
        reward_rate=reward_rate
    )
    return engine, ledger, issuer, clock
