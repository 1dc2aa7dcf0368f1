"""
Shared fixtures.

FakeWorld implements the physics-world contract with plain kinematics
(position += velocity * dt, no gravity, no collision response). Contacts
are scripted with queue_contact() and delivered as one batch per step, the
same way the pymunk world delivers them.
"""

import math

import pytest

from merge_arcade.core.config_loader import load_config
from merge_arcade.core.simulation import SimulationLoop
from merge_arcade.core.world_types import BodyState, ContactEvent, LABEL_ITEM


class FakeWorld:
    """Scripted stand-in for the physics collaborator."""

    def __init__(self, config):
        self.config = config
        self.bodies = {}
        self.listeners = []
        self.scripted = []
        self.steps = 0
        self.created = []
        self.removed = []
        self._next_id = 1

    def on_collision_start(self, callback):
        self.listeners.append(callback)

    def create_circle_body(self, position, radius, mass, restitution,
                           friction_linear, friction_air, collision_group):
        body_id = self._next_id
        self._next_id += 1
        self.bodies[body_id] = {
            "position": tuple(position),
            "velocity": (0.0, 0.0),
            "radius": radius,
            "mass": mass,
            "restitution": restitution,
            "group": collision_group,
        }
        self.created.append(body_id)
        return body_id

    def remove_body(self, body_id):
        self.removed.append(body_id)
        return self.bodies.pop(body_id, None) is not None

    def set_velocity(self, body_id, velocity):
        if body_id in self.bodies:
            self.bodies[body_id]["velocity"] = tuple(velocity)

    def set_position(self, body_id, position):
        if body_id in self.bodies:
            self.bodies[body_id]["position"] = tuple(position)

    def get_body(self, body_id):
        if body_id not in self.bodies:
            return None
        return self._state(body_id)

    def all_bodies(self):
        return [self._state(body_id) for body_id in self.bodies]

    def _state(self, body_id):
        body = self.bodies[body_id]
        vx, vy = body["velocity"]
        return BodyState(
            body_id=body_id,
            position=body["position"],
            velocity=body["velocity"],
            angle=0.0,
            speed=math.hypot(vx, vy),
            label=LABEL_ITEM,
        )

    def queue_contact(self, id_a, id_b=None, boundary=""):
        """Report a contact on the next step."""
        self.scripted.append((id_a, id_b, boundary))

    def step_simulation(self, dt_millis=None):
        if dt_millis is None:
            dt_millis = self.config.physics.tick_ms
        dt = dt_millis / 1000.0
        for body in self.bodies.values():
            x, y = body["position"]
            vx, vy = body["velocity"]
            body["position"] = (x + vx * dt, y + vy * dt)
        self.steps += 1

        batch = []
        for id_a, id_b, boundary in self.scripted:
            if id_a not in self.bodies:
                continue
            if id_b is None:
                batch.append(ContactEvent(a=self._state(id_a), b=None, boundary=boundary))
            elif id_b in self.bodies:
                batch.append(ContactEvent(a=self._state(id_a), b=self._state(id_b)))
        self.scripted = []

        for listener in self.listeners:
            listener(batch)
        return batch


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now=100.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def loop(config, clock):
    return SimulationLoop(config=config, seed=42, clock=clock, world_factory=FakeWorld)
