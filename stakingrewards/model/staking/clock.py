import time


class Clock:
    def now(self) -> int:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> int:
        return int(time.time())


class ManualClock(Clock):
    """
    Clock for tests, simulations and replays. Time only moves when told to, and never backwards.
    """
    def __init__(self, start_time: int = 0):
        self.time = int(start_time)

    def now(self) -> int:
        return self.time

    def set(self, timestamp: int) -> int:
        if timestamp < self.time:
            raise ValueError(f"Cannot move clock back from {self.time} to {timestamp}")
        self.time = int(timestamp)
        return self.time

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError(f"Cannot advance clock by {seconds} seconds")
        self.time += int(seconds)
        return self.time

    def __repr__(self):
        return f'ManualClock(time={self.time})'
