class StakingRewardsError(Exception):
    pass


class ConfigurationError(StakingRewardsError, ValueError):
    """Bad program shares, duration, rate or reserve set."""
    pass


class AccessDenied(StakingRewardsError, PermissionError):
    def __init__(self, account: str, role: str):
        super().__init__(f"{account} does not hold role {role}")
        self.account = account
        self.role = role


class NotParticipating(StakingRewardsError):
    def __init__(self, pool_id: str, reserve_id: str = None):
        if reserve_id is None:
            super().__init__(f"pool {pool_id} is not participating")
        else:
            super().__init__(f"reserve {reserve_id} of pool {pool_id} is not participating")
        self.pool_id = pool_id
        self.reserve_id = reserve_id


class NoRewards(StakingRewardsError):
    def __init__(self, provider: str):
        super().__init__(f"{provider} has no rewards to claim")
        self.provider = provider


class DuplicateInput(StakingRewardsError, ValueError):
    def __init__(self, duplicates: list):
        super().__init__(f"duplicate ids: {', '.join(str(d) for d in duplicates)}")
        self.duplicates = duplicates


class ArithmeticFault(StakingRewardsError, ArithmeticError):
    """
    An accounting invariant was broken. Never recoverable by the caller.
    """
    pass


def find_duplicates(ids) -> list:
    seen = set()
    duplicates = []
    for i in ids:
        if i in seen and i not in duplicates:
            duplicates.append(i)
        seen.add(i)
    return duplicates


def require_unique(ids) -> None:
    duplicates = find_duplicates(ids)
    if duplicates:
        raise DuplicateInput(duplicates)
