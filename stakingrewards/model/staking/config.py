import os

from dotenv import load_dotenv
from mpmath import mp, mpf

mp.dps = 50

PPM_RESOLUTION = 1_000_000
MULTIPLIER_INCREMENT = PPM_RESOLUTION // 4
MAX_MULTIPLIER = PPM_RESOLUTION * 2
REWARD_RATE_FACTOR = 10 ** 18
WEEK = 7 * 24 * 60 * 60

ROLE_SUPERVISOR = 'supervisor'
ROLE_PUBLISHER = 'publisher'


class Config:
    def __init__(
            self,
            network_token: str = None,
            rewards_account: str = 'staking_rewards',
            reward_token: str = 'REWARD',
            log_level: str = 'INFO',
            archive_path: str = './archive'
    ):
        self.network_token = network_token
        self.rewards_account = rewards_account
        self.reward_token = reward_token
        self.log_level = log_level
        self.archive_path = archive_path

    def __repr__(self):
        return (
            f'Config(network_token={self.network_token}, rewards_account={self.rewards_account}, '
            f'reward_token={self.reward_token}, log_level={self.log_level}, archive_path={self.archive_path})'
        )


def load_config(dotenv_path: str = None) -> Config:
    load_dotenv(dotenv_path)
    return Config(
        network_token=os.getenv('STAKING_NETWORK_TOKEN') or None,
        rewards_account=os.getenv('STAKING_REWARDS_ACCOUNT', 'staking_rewards'),
        reward_token=os.getenv('STAKING_REWARD_TOKEN', 'REWARD'),
        log_level=os.getenv('STAKING_LOG_LEVEL', 'INFO'),
        archive_path=os.getenv('STAKING_ARCHIVE_PATH', './archive')
    )


def weekly_rewards_to_rate(weekly_rewards: str, decimals: int = 18) -> int:
    """
    Convert a weekly reward budget in whole tokens into an integer per-second rate in base units.
    Numbers are read through their decimal string, and the budget is rounded to whole base units
    before the floor division by a week.
    """
    budget = mpf(str(weekly_rewards)) * mpf(10) ** decimals
    return int(mp.nint(budget)) // WEEK


def amount_to_decimal(amount: int, decimals: int = 18) -> mpf:
    return mpf(amount) / mpf(10) ** decimals
