import logging

from .agents import Agent
from .errors import AccessDenied

logger = logging.getLogger(__name__)


class TokenIssuer:
    def __init__(self, token: str = 'REWARD', agents: dict[str: Agent] = None, mint_cap: int = None):
        """
        Mints reward tokens into agent holdings.
        If mint_cap is set, minting beyond it raises ValueError.
        """
        self.token = token
        self.agents = agents if agents is not None else {}
        self.mint_cap = mint_cap
        self.total_minted = 0

    def snapshot(self) -> dict:
        return {
            'total_minted': self.total_minted,
            'holdings': {agent_id: agent.get_holdings(self.token) for agent_id, agent in self.agents.items()}
        }

    def restore(self, snapshot: dict) -> None:
        self.total_minted = snapshot['total_minted']
        for agent_id in list(self.agents):
            if agent_id not in snapshot['holdings']:
                del self.agents[agent_id]
            else:
                self.agents[agent_id].holdings[self.token] = snapshot['holdings'][agent_id]

    def mint(self, account: str, amount: int) -> None:
        if amount <= 0:
            raise ValueError(f"Cannot mint {amount} {self.token}")
        if self.mint_cap is not None and self.total_minted + amount > self.mint_cap:
            raise ValueError(f"Minting {amount} {self.token} would exceed the cap of {self.mint_cap}")
        if account not in self.agents:
            self.agents[account] = Agent(unique_id=account)
        self.agents[account].transfer_to(self.token, amount)
        self.total_minted += amount
        logger.debug('minted %s %s to %s', amount, self.token, account)

    def balance(self, account: str) -> int:
        if account not in self.agents:
            return 0
        return self.agents[account].get_holdings(self.token)


class RoleGate:
    def __init__(self, roles: dict[str: list[str]] = None):
        """
        roles should be in the form of:
        {
            role: [account, ...]
        }
        """
        self.roles = {role: set(accounts) for role, accounts in roles.items()} if roles else {}

    def grant_role(self, role: str, account: str) -> None:
        self.roles.setdefault(role, set()).add(account)

    def revoke_role(self, role: str, account: str) -> None:
        self.roles.get(role, set()).discard(account)

    def has_role(self, account: str, role: str) -> bool:
        return account in self.roles.get(role, set())

    def check(self, account: str, role: str) -> None:
        if not self.has_role(account, role):
            raise AccessDenied(account, role)
