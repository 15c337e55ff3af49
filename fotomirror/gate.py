"""
Admission control: two independent bounded pools (network, local) plus one
global in-flight counter that the drain loop polls to detect completion.
"""

import threading

# Local slots cap running tasks. Spawners count new local work with admit_local_op and never wait on the pool.
DEFAULT_LOCAL_CAPACITY = 10_000
DEFAULT_NETWORK_CAPACITY = 20

NETWORK = "network"
LOCAL = "local"


class Operation:
    """
    One admitted unit of work. Counts once in the gate's in-flight counter from
    admission until release(); holds a pool slot from seat() until release().
    Usable as a context manager.
    """

    __slots__ = ("kind", "_gate", "_pool", "_seated", "_released", "_lock")

    def __init__(self, gate: "AdmissionGate", kind: str, pool: threading.Semaphore) -> None:
        self.kind = kind
        self._gate = gate
        self._pool = pool
        self._seated = False
        self._released = False
        self._lock = threading.Lock()

    @property
    def seated(self) -> bool:
        return self._seated

    @property
    def released(self) -> bool:
        return self._released

    def seat(self) -> None:
        """Block until a slot of this operation's pool is free, then occupy it."""
        if self._seated:
            return
        self._pool.acquire()
        with self._lock:
            self._seated = True

    def release(self) -> None:
        """Free the pool slot (if seated), then decrement the in-flight counter. Second calls are ignored."""
        with self._lock:
            if self._released:
                return
            self._released = True
            seated = self._seated
        if seated:
            self._pool.release()
        self._gate._decrement()

    def __enter__(self) -> "Operation":
        return self

    def __exit__(self, *args: object) -> None:
        self.release()

    def __repr__(self) -> str:
        if self._released:
            state = "released"
        else:
            state = "held" if self._seated else "waiting"
        return f"<Operation {self.kind} {state}>"


class AdmissionGate:
    """Bounded-concurrency gate shared by every fetcher in a session."""

    def __init__(
        self,
        network_capacity: int = DEFAULT_NETWORK_CAPACITY,
        local_capacity: int = DEFAULT_LOCAL_CAPACITY,
    ) -> None:
        if network_capacity < 1 or local_capacity < 1:
            raise ValueError("pool capacities must be >= 1")
        self.network_capacity = network_capacity
        self.local_capacity = local_capacity
        self._network = threading.BoundedSemaphore(network_capacity)
        self._local = threading.BoundedSemaphore(local_capacity)
        self._ops_lock = threading.Lock()
        self._in_flight = 0

    def _admit(self, kind: str, pool: threading.Semaphore) -> Operation:
        with self._ops_lock:
            self._in_flight += 1
        return Operation(self, kind, pool)

    def admit_local_op(self) -> Operation:
        """
        Count local work without waiting for a slot; the task calls seat() once it runs.
        Lets a task that already holds a slot hand off new work without blocking.
        """
        return self._admit(LOCAL, self._local)

    def begin_network_op(self) -> Operation:
        """Admit network-class work; blocks while the network pool is full."""
        op = self._admit(NETWORK, self._network)
        op.seat()
        return op

    def begin_local_op(self) -> Operation:
        """Admit local (filesystem/parse) work; blocks while the local pool is full."""
        op = self._admit(LOCAL, self._local)
        op.seat()
        return op

    def _decrement(self) -> None:
        with self._ops_lock:
            self._in_flight -= 1

    def in_flight(self) -> int:
        with self._ops_lock:
            return self._in_flight
