from mines_server.domain.commit_reveal import derive_seed, hash_secret
from mines_server.domain.grid_rules import GRID_SIZE, is_unsafe

GOVERNOR = "0x" + "aa" * 20
PROVIDER = "0x" + "bb" * 20
ALICE = "0x" + "11" * 20
ALICE_DELEGATE = "0x" + "12" * 20
BOB = "0x" + "22" * 20
MALLORY = "0x" + "66" * 20

FEE = 100
START_TIME = 1_700_000_000

SECRET_A = "0x" + "5a" * 32
COMMIT_A = hash_secret(SECRET_A)
RANDOM_A = "0x" + "c3" * 32


class RecordingPublisher:
    """Stands in for the Redis publisher and keeps what would have been sent."""

    def __init__(self):
        self.events = []

    async def publish_all(self, events):
        self.events.extend(events)

    def kinds(self) -> list[str]:
        return [event.kind for event in self.events]


class FakeClock:
    def __init__(self, now: int = START_TIME):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def cells(seed: str, threshold: int, unsafe: bool) -> list[tuple[int, int]]:
    """All cells of the grid with the requested verdict, in row order."""
    return [
        (x, y)
        for y in range(GRID_SIZE)
        for x in range(GRID_SIZE)
        if is_unsafe(seed, x, y, threshold) == unsafe
    ]


def seed_for(principal: str, secret: str = SECRET_A, random_value: str = RANDOM_A) -> str:
    return derive_seed(random_value, secret, principal)
