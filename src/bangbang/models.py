"""
bangbang/models.py - 轨迹数据模型

定义 bang-bang 双积分器轨迹使用的数据结构：Segment、Axis、Trajectory，
以及 time-optimal 协调时间计算中使用的候选标签 Solution / TimeCandidate。

状态约定: 四维状态 (x, xdot, y, ydot)，x / y 两轴相互独立。
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, Any

import numpy as np


class Solution(enum.Enum):
    """单轴候选总时间的类型

    - SWITCH: 经由切换面直接相交的最快路径
    - LIMIT:  切换时不穿越零速度的最慢路径
    - MIRROR: 切换时穿越零速度的最慢路径（"镜像"）

    LIMIT 与 MIRROR 之间的时间区间即 "gap"，其中不存在单次切换解。
    """
    SWITCH = "switch"
    LIMIT = "limit"
    MIRROR = "mirror"


@dataclass
class TimeCandidate:
    """带标签的候选总时间"""
    t: float
    solution: Solution


@dataclass
class Segment:
    """恒定加速度段

    Attributes:
        u: 有符号加速度
        t: 持续时间（非负）
    """
    u: float = 0.0
    t: float = 0.0


@dataclass
class Axis:
    """单轴两段 bang-bang 轨迹

    Attributes:
        i: 初始位置
        idot: 初始速度
        g: 目标位置
        gdot: 目标速度
        s1: 第一段（切换前）
        s2: 第二段（切换后）

    不变量: s1.t + s2.t == tw（外部给定的协调总时间），s1.u == -s2.u
    """
    i: float = 0.0
    idot: float = 0.0
    g: float = 0.0
    gdot: float = 0.0
    s1: Segment = field(default_factory=Segment)
    s2: Segment = field(default_factory=Segment)

    @property
    def duration(self) -> float:
        """该轴总时间"""
        return self.s1.t + self.s2.t

    @property
    def switch_position(self) -> float:
        """切换时刻的位置"""
        t1 = self.s1.t
        return self.i + self.idot * t1 + 0.5 * self.s1.u * t1 * t1

    @property
    def switch_velocity(self) -> float:
        """切换时刻的速度"""
        return self.idot + self.s1.u * self.s1.t

    def to_dict(self) -> Dict[str, Any]:
        return {
            'i': self.i, 'idot': self.idot,
            'g': self.g, 'gdot': self.gdot,
            's1': {'u': self.s1.u, 't': self.s1.t},
            's2': {'u': self.s2.u, 't': self.s2.t},
        }


@dataclass
class Trajectory:
    """二维（x 轴 + y 轴）协调轨迹，两轴共享总时间"""
    x: Axis = field(default_factory=Axis)
    y: Axis = field(default_factory=Axis)

    @property
    def duration(self) -> float:
        """协调总时间 (两轴取较大者，正常情况下两者相等)"""
        return max(self.x.duration, self.y.duration)

    @property
    def initial_state(self) -> np.ndarray:
        return np.array([self.x.i, self.x.idot, self.y.i, self.y.idot])

    @property
    def goal_state(self) -> np.ndarray:
        return np.array([self.x.g, self.x.gdot, self.y.g, self.y.gdot])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'x': self.x.to_dict(),
            'y': self.y.to_dict(),
            'duration': self.duration,
        }
