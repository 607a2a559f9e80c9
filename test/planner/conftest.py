"""test/planner/conftest.py - 共享 fixtures"""
import numpy as np
import pytest

from bangbang.shooting import ShootingSolution
from kinoplanner.arena import FieldArena, half_field_arena
from kinoplanner.models import PlannerConfig


# ==================== 场地 ====================

@pytest.fixture
def empty_field():
    """无障碍物的 16 x 8 场地"""
    return half_field_arena(obstacles=[])


@pytest.fixture
def walled_field():
    """默认两堵墙的半场"""
    return half_field_arena()


@pytest.fixture
def near_goal_field():
    """目标可由恒定控制 u = (1.0, 0.5) 在 0.4 s 内到达的场地"""
    return FieldArena(
        initial=[1.0, 0.0, 1.0, 0.0],
        goal=[1.08, 0.4, 1.04, 0.2],
        state_min=[0.0, -5.0, 0.0, -5.0],
        state_max=[16.0, 5.0, 8.0, 5.0],
    )


# ==================== 配置 ====================

@pytest.fixture
def config():
    """覆盖整个状态空间的大半径，保证近邻集合非空"""
    return PlannerConfig(radius=30.0, seed=42)


# ==================== 协作者替身 ====================

class FixedShootingSolver:
    """总是返回固定时长的 shooting 求解器替身"""

    def __init__(self, dt: float = 0.1):
        self.dt = dt
        self.calls = []

    def solve(self, f, x1, x2, time_forward):
        self.calls.append((np.array(x1), np.array(x2), time_forward))
        dt = self.dt if time_forward else -self.dt
        return ShootingSolution(dt=dt, u=np.zeros(2))


class NeverShootingSolver:
    """总是失败的 shooting 求解器替身"""

    def solve(self, f, x1, x2, time_forward):
        return None


@pytest.fixture
def fixed_solver():
    return FixedShootingSolver()


@pytest.fixture
def never_solver():
    return NeverShootingSolver()
