"""
kinoplanner/arena.py - 场地与碰撞判定

管理二维矩形场地中的 AABB 障碍物，提供规划器所需的碰撞 oracle 接口：

- clear(state)        状态是否在边界内且位置不在障碍物内
- link(state_a, b)    两状态位置之间的直线段是否无碰撞
- bounds()            四维状态边界 (min, max)
- initial() / goal()  始末状态

场景可序列化为 JSON，格式与 Obstacle.to_dict() 兼容。
"""

import json
import logging
from typing import List, Dict, Any, Optional, Tuple

import numpy as np

from .models import Obstacle

logger = logging.getLogger(__name__)


class FieldArena:
    """二维双积分器场地

    状态为 (x, xdot, y, ydot)；障碍物只约束位置 (x, y)。

    Args:
        initial: 初始状态
        goal: 目标状态
        state_min: 四维状态下界
        state_max: 四维状态上界

    Example:
        >>> arena = FieldArena([1, 0, 1, 0], [15, 0, 7, 0],
        ...                    [0, -5, 0, -5], [16, 5, 8, 5])
        >>> arena.add_obstacle([6, 0], [7, 5], name="wall")
        >>> arena.clear(np.array([3.0, 0.0, 3.0, 0.0]))
        True
    """

    def __init__(
        self,
        initial: Any,
        goal: Any,
        state_min: Any,
        state_max: Any,
    ) -> None:
        self._initial = np.array(initial, dtype=np.float64)
        self._goal = np.array(goal, dtype=np.float64)
        self._min = np.array(state_min, dtype=np.float64)
        self._max = np.array(state_max, dtype=np.float64)
        for name, arr in (('initial', self._initial), ('goal', self._goal),
                          ('state_min', self._min), ('state_max', self._max)):
            if arr.shape != (4,):
                raise ValueError(f"{name} 必须是四维状态 (x, xdot, y, ydot)")
        if np.any(self._min >= self._max):
            raise ValueError("state_min 必须逐维小于 state_max")
        self._obstacles: List[Obstacle] = []
        self.n_clear_checks = 0

    # ── 障碍物管理 ──

    @property
    def n_obstacles(self) -> int:
        return len(self._obstacles)

    def add_obstacle(
        self,
        min_point: Any,
        max_point: Any,
        name: str = "",
    ) -> Obstacle:
        """添加一个 AABB 障碍物

        Args:
            min_point: 最小角点 [x, y]
            max_point: 最大角点 [x, y]
            name: 障碍物名称

        Returns:
            创建的 Obstacle 实例
        """
        if not name:
            name = f"obstacle_{self.n_obstacles}"
        obs = Obstacle(min_point=min_point, max_point=max_point, name=name)
        self._obstacles.append(obs)
        logger.debug("添加障碍物 '%s': min=%s, max=%s", name,
                     obs.min_point.tolist(), obs.max_point.tolist())
        return obs

    def get_obstacles(self) -> List[Obstacle]:
        return list(self._obstacles)

    # ── oracle 接口 ──

    def initial(self) -> np.ndarray:
        return self._initial.copy()

    def goal(self) -> np.ndarray:
        return self._goal.copy()

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        return self._min.copy(), self._max.copy()

    def in_bounds(self, state: np.ndarray) -> bool:
        return bool(np.all(state >= self._min) and np.all(state <= self._max))

    def clear(self, state: np.ndarray) -> bool:
        """状态是否可行: 在边界内，且位置不在任何障碍物内"""
        self.n_clear_checks += 1
        if not self.in_bounds(state):
            return False
        xy = np.array([state[0], state[2]])
        for obs in self._obstacles:
            if obs.contains_point(xy):
                return False
        return True

    def link(self, state_a: np.ndarray, state_b: np.ndarray) -> bool:
        """两状态之间的位置直线段是否无碰撞"""
        if not self.clear(state_a) or not self.clear(state_b):
            return False
        p = np.array([state_a[0], state_a[2]])
        q = np.array([state_b[0], state_b[2]])
        for obs in self._obstacles:
            if obs.intersects_segment(p, q):
                return False
        return True

    # ── 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        return {
            'initial': self._initial.tolist(),
            'goal': self._goal.tolist(),
            'min': self._min.tolist(),
            'max': self._max.tolist(),
            'obstacles': [obs.to_dict() for obs in self._obstacles],
        }

    def to_json(self, filepath: str) -> None:
        """保存场地到 JSON 文件"""
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldArena':
        """从字典加载场地

        Args:
            data: {'initial': [...], 'goal': [...], 'min': [...], 'max': [...],
                   'obstacles': [{'min': [...], 'max': [...], 'name': ...}, ...]}
        """
        arena = cls(data['initial'], data['goal'], data['min'], data['max'])
        for item in data.get('obstacles', []):
            arena.add_obstacle(
                min_point=item['min'],
                max_point=item['max'],
                name=item.get('name', ''),
            )
        return arena

    @classmethod
    def from_json(cls, filepath: str) -> 'FieldArena':
        """从 JSON 文件加载场地"""
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return f"FieldArena(n_obstacles={self.n_obstacles})"


def half_field_arena(obstacles: Optional[List[Dict[str, Any]]] = None) -> FieldArena:
    """半场示例场地: 16 x 8，速度 ±5，从左下角静止出发到右上角静止

    Args:
        obstacles: 障碍物 dict 列表，None 时使用默认的两堵墙
    """
    arena = FieldArena(
        initial=[1.0, 0.0, 1.0, 0.0],
        goal=[15.0, 0.0, 7.0, 0.0],
        state_min=[0.0, -5.0, 0.0, -5.0],
        state_max=[16.0, 5.0, 8.0, 5.0],
    )
    if obstacles is None:
        obstacles = [
            {'min': [5.0, 0.0], 'max': [6.0, 5.0], 'name': 'wall_low'},
            {'min': [10.0, 3.0], 'max': [11.0, 8.0], 'name': 'wall_high'},
        ]
    for item in obstacles:
        arena.add_obstacle(item['min'], item['max'], name=item.get('name', ''))
    return arena
