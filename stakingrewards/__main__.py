import json
import logging
import sys
from pprint import pprint

from stakingrewards.model.processing import load_scenario, save_engine
from stakingrewards.model.run import replay
from stakingrewards.model.staking.config import load_config, amount_to_decimal


def summarize(state, decimals: int = 18) -> dict:
    engine = state.engine
    return {
        agent_id: {
            'payable': str(amount_to_decimal(engine.rewards(agent_id), decimals)),
            'claimed': str(amount_to_decimal(engine.total_claimed_rewards(agent_id), decimals)),
            'pools': engine.provider_pools(agent_id)
        }
        for agent_id in state.agents
    }


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("Usage: python -m stakingrewards <scenario> [--save]")
        sys.exit(1)
    config = load_config()
    logging.basicConfig(level=config.log_level, format='%(asctime)s %(name)s %(levelname)s %(message)s')

    with open(sys.argv[1]) as scenario_file:
        scenario = json.load(scenario_file)
    if config.network_token is None:
        config.network_token = scenario.get('network_token')

    initial_state, events = load_scenario(scenario, config)
    results, final_state = replay(initial_state, events, silent=False)
    for result in results:
        pprint(result)
    pprint(summarize(final_state, scenario.get('decimals', 18)))

    if len(sys.argv) == 3 and sys.argv[2] == '--save':
        filename = save_engine(final_state.engine, path=config.archive_path)
        print(f'Saved engine state to {filename}')
