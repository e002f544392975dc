class Event:
    name = 'Event'

    def __eq__(self, other):
        return type(self) is type(other) and self.__dict__ == other.__dict__

    def __repr__(self):
        return f'{self.name}({", ".join(f"{k}={v}" for k, v in self.__dict__.items())})'

    def to_dict(self) -> dict:
        return {'event': self.name, **self.__dict__}


class PoolProgramAdded(Event):
    name = 'PoolProgramAdded'

    def __init__(self, pool_id: str, start_time: int, end_time: int, reward_rate: int):
        self.pool_id = pool_id
        self.start_time = start_time
        self.end_time = end_time
        self.reward_rate = reward_rate


class PoolProgramRemoved(Event):
    name = 'PoolProgramRemoved'

    def __init__(self, pool_id: str):
        self.pool_id = pool_id


class PoolProgramExtended(Event):
    name = 'PoolProgramExtended'

    def __init__(self, pool_id: str, end_time: int):
        self.pool_id = pool_id
        self.end_time = end_time


class RewardsClaimed(Event):
    name = 'RewardsClaimed'

    def __init__(self, provider: str, amount: int):
        self.provider = provider
        self.amount = amount


class RewardsStaked(Event):
    name = 'RewardsStaked'

    def __init__(self, provider: str, pool_id: str, amount: int, position_id: int):
        self.provider = provider
        self.pool_id = pool_id
        self.amount = amount
        self.position_id = position_id


class LastClaimTimeUpdated(Event):
    name = 'LastClaimTimeUpdated'

    def __init__(self, provider: str, claim_time: int):
        self.provider = provider
        self.claim_time = claim_time
