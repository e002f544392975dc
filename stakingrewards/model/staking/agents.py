class Agent:
    unique_id: str = ''

    def __init__(self,
                 holdings: dict[str: int] = None,
                 staking_strategy: any = None,
                 unique_id: str = 'agent',
                 enforce_holdings: bool = True
                 ):
        """
        holdings should be in the form of:
        {
            token_name: quantity
        }
        Quantities are integers in the token's base units.
        If enforce_holdings is False, validate_holdings will always return True.
        """
        self.holdings = {tkn: val for tkn, val in holdings.items()} if holdings is not None else {}
        self.initial_holdings = {tkn: val for tkn, val in holdings.items()} if holdings is not None else {}
        self.staking_strategy = staking_strategy
        self.unique_id = unique_id
        self.enforce_holdings = enforce_holdings

    def __repr__(self):
        return (
                f'Agent: {self.unique_id}\n'
                f'********************************\n'
                f'staking strategy: {self.staking_strategy.name if self.staking_strategy else "None"}\n' +
                f'holdings: (\n\n' +
                f'\n'.join([f'    *{tkn}*: {self.holdings[tkn]}\n' for tkn in self.holdings]) + ')\n'
        )

    def copy(self):
        copy_self = Agent(
            holdings={k: v for k, v in self.holdings.items()},
            staking_strategy=self.staking_strategy,
            unique_id=self.unique_id,
            enforce_holdings=self.enforce_holdings
        )
        copy_self.initial_holdings = {k: v for k, v in self.initial_holdings.items()}
        return copy_self

    @property
    def asset_list(self) -> list[str]:
        return list(self.holdings.keys())

    def get_holdings(self, tkn) -> int:
        if tkn not in self.holdings:
            return 0
        return self.holdings[tkn]

    def validate_holdings(self, tkn, amt=None) -> bool:
        if not self.enforce_holdings:
            return True
        if amt is None:
            return self.get_holdings(tkn) > 0
        else:
            return self.get_holdings(tkn) >= amt

    def transfer_to(self, tkn: str, amt: int) -> None:
        if tkn not in self.holdings:
            self.holdings[tkn] = 0
        self.holdings[tkn] += amt

    def transfer_from(self, tkn: str, amt: int) -> None:
        if self.enforce_holdings:
            if not self.validate_holdings(tkn, amt):
                raise ValueError(f"Agent {self.unique_id} does not have enough {tkn} to transfer {amt}")
        elif tkn not in self.holdings:
            self.holdings[tkn] = 0
        self.holdings[tkn] -= amt


class AgentArchiveState:
    def __init__(self, agent: Agent):
        self.unique_id = agent.unique_id
        self.holdings = {k: v for k, v in agent.holdings.items()}
