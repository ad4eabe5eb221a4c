from dataclasses import dataclass, field

RUNNING = "RUNNING"


@dataclass
class ConnectorTask:
    state: str = ""

    @property
    def running(self) -> bool:
        return self.state == RUNNING


@dataclass
class ConnectorStatus:
    name: str
    tasks: list[ConnectorTask] = field(default_factory=list)


@dataclass
class TaskCounts:
    running: int = 0
    failing: int = 0

    @property
    def total(self) -> int:
        return self.running + self.failing
