"""
Evolver — World Collaborator

Copyright (c) 2026 SolisHQ (github.com/solishq). All rights reserved.
Licensed under MIT.

THE BOUNDARY:
  The evolutionary core never touches bodies, meshes or colliders. It talks
  to a World through seven calls and holds nothing but opaque EntityRef
  handles. The world owns every entity; the core owns every handle.

  Any call may raise StaleEntityError: the entity was despawned, or it was
  spawned this tick and has not materialized yet. Callers decide whether
  that is fatal (it never is for the scheduler).

SANDBOX WORLD:
  A small 2-D mass-spring world good enough to exercise the engine headless:
    joints  — unit point masses under gravity, per-joint linear damping
    bones   — stiff damped springs holding their spawn length
    muscles — softer damped springs pulled toward a commanded target length
    ground  — one floor per lane (lane = spawn height // lane_height):
              spring-damper support plus Coulomb friction on horizontal motion

  Semi-implicit Euler with fixed substeps. Entities spawned between steps
  stay pending until the next `step`, the same one-tick lag a real
  physics backend shows.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NewType, Optional

import numpy as np

from .exceptions import StaleEntityError


EntityRef = NewType('EntityRef', int)


@dataclass(frozen=True)
class Transform:
    position: tuple[float, float]
    rotation: float = 0.0


class World(ABC):
    """Everything the core needs from physics, rendering and entity lifecycle."""

    @abstractmethod
    def spawn_joint(self, position) -> EntityRef:
        pass

    @abstractmethod
    def spawn_bone(self, entities: tuple[EntityRef, EntityRef], positions) -> EntityRef:
        pass

    @abstractmethod
    def spawn_muscle(self, entities: tuple[EntityRef, EntityRef], positions) -> EntityRef:
        pass

    @abstractmethod
    def despawn(self, ref: EntityRef):
        pass

    @abstractmethod
    def get_transform(self, ref: EntityRef) -> Transform:
        pass

    @abstractmethod
    def apply_linear_damping(self, ref: EntityRef, damping: float):
        pass

    @abstractmethod
    def apply_force_to_contract_muscle(self, ref: EntityRef, target_length: float):
        pass


# ─── Sandbox Implementation ──────────────────────────────

@dataclass
class _Joint:
    position: np.ndarray
    velocity: np.ndarray
    floor: float
    damping: float = 0.5
    # Orientation is read off the first bone attached to the joint
    anchor: Optional[EntityRef] = None
    anchor_angle: float = 0.0


@dataclass
class _Link:
    kind: str                      # 'bone' | 'muscle'
    a: EntityRef
    b: EntityRef
    rest_length: float
    target_length: float


class SandboxWorld(World):
    GRAVITY = -98.1
    BONE_STIFFNESS = 2000.0
    BONE_DAMPING = 20.0
    MUSCLE_STIFFNESS = 400.0
    MUSCLE_DAMPING = 8.0
    GROUND_STIFFNESS = 3000.0
    GROUND_DAMPING = 40.0
    FRICTION = 0.7
    MAX_SUBSTEP = 1.0 / 240.0

    def __init__(self, lane_height: float = 200.0):
        self.lane_height = lane_height
        self.joints: dict[EntityRef, _Joint] = {}
        self.links: dict[EntityRef, _Link] = {}
        self.pending: set[EntityRef] = set()
        self.time = 0.0
        self._next_ref = 0

    def _new_ref(self) -> EntityRef:
        self._next_ref += 1
        ref = EntityRef(self._next_ref)
        self.pending.add(ref)
        return ref

    def _live(self, ref: EntityRef):
        if ref in self.pending:
            raise StaleEntityError(ref)
        entity = self.joints.get(ref) or self.links.get(ref)
        if entity is None:
            raise StaleEntityError(ref)
        return entity

    # ─── Collaborator Contract ───────────────────────────

    def spawn_joint(self, position) -> EntityRef:
        ref = self._new_ref()
        pos = np.array(position, dtype=np.float64)
        floor = math.floor(pos[1] / self.lane_height) * self.lane_height
        self.joints[ref] = _Joint(position=pos, velocity=np.zeros(2), floor=floor)
        return ref

    def _spawn_link(self, kind: str, entities, positions) -> EntityRef:
        a, b = entities
        if a not in self.joints or b not in self.joints:
            raise StaleEntityError(a if a not in self.joints else b)
        pa, pb = (np.asarray(p, dtype=np.float64) for p in positions)
        length = float(np.linalg.norm(pb - pa))
        ref = self._new_ref()
        self.links[ref] = _Link(kind, a, b, length, length)
        if kind == 'bone':
            for own, other in ((a, b), (b, a)):
                joint = self.joints[own]
                if joint.anchor is None:
                    joint.anchor = other
                    joint.anchor_angle = _angle(joint.position, self.joints[other].position)
        return ref

    def spawn_bone(self, entities, positions) -> EntityRef:
        return self._spawn_link('bone', entities, positions)

    def spawn_muscle(self, entities, positions) -> EntityRef:
        return self._spawn_link('muscle', entities, positions)

    def despawn(self, ref: EntityRef):
        self.pending.discard(ref)
        if self.joints.pop(ref, None) is None and self.links.pop(ref, None) is None:
            raise StaleEntityError(ref)

    def get_transform(self, ref: EntityRef) -> Transform:
        entity = self._live(ref)
        if isinstance(entity, _Link):
            if entity.a not in self.joints or entity.b not in self.joints:
                raise StaleEntityError(ref)
            pa, pb = self.joints[entity.a].position, self.joints[entity.b].position
            mid = (pa + pb) / 2.0
            return Transform((float(mid[0]), float(mid[1])), _angle(pa, pb))
        rotation = 0.0
        other = self.joints.get(entity.anchor) if entity.anchor is not None else None
        if other is not None:
            rotation = _wrap(_angle(entity.position, other.position) - entity.anchor_angle)
        return Transform((float(entity.position[0]), float(entity.position[1])), rotation)

    def apply_linear_damping(self, ref: EntityRef, damping: float):
        entity = self._live(ref)
        if not isinstance(entity, _Joint):
            raise TypeError(f"entity {ref} is not a joint")
        entity.damping = float(damping)

    def apply_force_to_contract_muscle(self, ref: EntityRef, target_length: float):
        entity = self._live(ref)
        if not isinstance(entity, _Link) or entity.kind != 'muscle':
            raise TypeError(f"entity {ref} is not a muscle")
        entity.target_length = max(float(target_length), 0.0)

    # ─── Integration ─────────────────────────────────────

    def step(self, dt: float):
        """Advance physics by `dt` seconds, then materialize pending entities."""
        if dt > 0 and self.joints:
            self._integrate(dt)
        self.time += dt
        self.pending.clear()

    def _integrate(self, dt: float):
        refs = list(self.joints)
        index = {ref: i for i, ref in enumerate(refs)}
        joints = [self.joints[r] for r in refs]
        pos = np.array([j.position for j in joints])
        vel = np.array([j.velocity for j in joints])
        floor = np.array([j.floor for j in joints])
        damping = np.array([j.damping for j in joints])

        links = [l for l in self.links.values() if l.a in index and l.b in index]
        ia = np.array([index[l.a] for l in links], dtype=int)
        ib = np.array([index[l.b] for l in links], dtype=int)
        target = np.array([l.target_length for l in links])
        is_bone = np.array([l.kind == 'bone' for l in links], dtype=bool)
        k = np.where(is_bone, self.BONE_STIFFNESS, self.MUSCLE_STIFFNESS)
        c = np.where(is_bone, self.BONE_DAMPING, self.MUSCLE_DAMPING)

        n_sub = max(1, math.ceil(dt / self.MAX_SUBSTEP))
        h = dt / n_sub
        for _ in range(n_sub):
            force = np.zeros_like(pos)
            force[:, 1] += self.GRAVITY

            if len(links):
                d = pos[ib] - pos[ia]
                length = np.linalg.norm(d, axis=1)
                safe = np.where(length > 1e-9, length, 1.0)
                unit = d / safe[:, None]
                rel_v = np.einsum('ij,ij->i', vel[ib] - vel[ia], unit)
                tension = k * (length - target) + c * rel_v
                f = unit * tension[:, None]
                np.add.at(force, ia, f)
                np.add.at(force, ib, -f)

            # Ground: spring-damper support, Coulomb friction capped at stopping force
            pen = floor - pos[:, 1]
            contact = pen > 0
            if contact.any():
                normal = np.maximum(
                    0.0, self.GROUND_STIFFNESS * pen - self.GROUND_DAMPING * vel[:, 1])
                normal = np.where(contact, normal, 0.0)
                stop = np.abs(vel[:, 0]) / h
                friction = np.minimum(self.FRICTION * normal, stop) * np.sign(vel[:, 0])
                force[:, 1] += normal
                force[:, 0] -= friction

            vel = (vel + force * h) / (1.0 + h * damping)[:, None]
            pos = pos + vel * h

        for j, p, v in zip(joints, pos, vel):
            j.position = p
            j.velocity = v


def _angle(a: np.ndarray, b: np.ndarray) -> float:
    d = b - a
    return float(math.atan2(d[1], d[0]))


def _wrap(angle: float) -> float:
    return (angle + math.pi) % (2.0 * math.pi) - math.pi
