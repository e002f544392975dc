import logging
import time

from .staking.global_state import GlobalState

logger = logging.getLogger(__name__)


def run(initial_state: GlobalState, time_steps: int, silent: bool = False) -> list:
    """
    Evolve a copy of initial_state for time_steps steps and return the state archived after each one.
    """
    state = initial_state.copy()
    started = time.time()
    if not silent:
        print(f'Simulating {time_steps} steps of {state.time_step_seconds}s from t = {state.clock.now()}...')

    archived = []
    for _ in range(time_steps):
        state.evolve()
        archived.append(state.archive())
        logger.debug('step %s done at t = %s', state.time_step, state.clock.now())

    if not silent:
        print(f'Reached t = {state.clock.now()} in {round(time.time() - started, 3)} seconds.')
    return archived


def replay(initial_state: GlobalState, events: list[dict], silent: bool = True) -> tuple[list[dict], GlobalState]:
    """
    Apply a time-ordered event log against a copy of initial_state, one event at a time.
    Each event is an action understood by GlobalState.execute_action with a 'time' field.
    Returns one record per event with its result, and the final state.
    """
    state = initial_state.copy()
    results = []
    for i, event in enumerate(events):
        event_time = event['time']
        if event_time < state.clock.now():
            raise ValueError(f"Event {i} at {event_time} is earlier than the previous event at {state.clock.now()}")
        state.clock.set(event_time)
        action = {k: v for k, v in event.items() if k != 'time'}
        result = state.execute_action(action)
        logger.debug('replayed %s at %s: %s', action['type'], event_time, result)
        results.append({'time': event_time, 'type': action['type'], 'result': result})
    if not silent:
        print(f'Replayed {len(events)} events up to t = {state.clock.now()}.')
    return results, state
