"""
bangbang/steering.py - Bang-bang 转向服务

LaSalle et al. 的 "steering" 是沿轨迹前进直到碰到障碍物，再在障碍物
边界处以静止状态重新规划；这样会产生大量贴着边界的折角轨迹。
这里的做法更简单：按固定时间步采样整条轨迹做碰撞检测，
无碰撞则返回轨迹，否则返回 None。
"""

import logging
from typing import Callable, Optional

import numpy as np

from .axis_solver import sample_axis, slow_u
from .models import Trajectory
from .time_optimal import t_optimal

logger = logging.getLogger(__name__)

# 轨迹碰撞检测的采样时间步
DEFAULT_T_STEP = 0.1

# 计算采样步数时吸收 t_max / t_step 的舍入误差
STEP_TOL = 1e-9


def optimal_trajectory(
    x_i: np.ndarray,
    x_g: np.ndarray,
    umax: float,
) -> Optional[Trajectory]:
    """返回从 x_i 到 x_g、两轴同时完成的四维轨迹

    时间反向时由调用方交换参数。

    Returns:
        Trajectory；任一轴在协调时间下无 bang-bang 解时返回 None
    """
    tw = t_optimal(x_i, x_g, umax)
    x_axis = slow_u(float(x_i[0]), float(x_i[1]), float(x_g[0]), float(x_g[1]), tw)
    if x_axis is None:
        return None
    y_axis = slow_u(float(x_i[2]), float(x_i[3]), float(x_g[2]), float(x_g[3]), tw)
    if y_axis is None:
        return None
    return Trajectory(x=x_axis, y=y_axis)


def sample_trajectory(trajectory: Trajectory, t_sec: float) -> np.ndarray:
    """在 t_sec 时刻采样完整状态 (x, xdot, y, ydot)

    恒定加速度段可直接用闭式运动学计算。
    """
    x_sample = sample_axis(trajectory.x, t_sec)
    y_sample = sample_axis(trajectory.y, t_sec)
    return np.array([x_sample[0], x_sample[1], y_sample[0], y_sample[1]])


def bang_bang_steer(
    free: Callable[[np.ndarray], bool],
    x_i: np.ndarray,
    x_g: np.ndarray,
    time_forward: bool,
    umax: float,
    t_step: float = DEFAULT_T_STEP,
) -> Optional[Trajectory]:
    """构造并验证从 x_i 到 x_g 的可行轨迹

    Args:
        free: 状态无碰撞判定
        x_i: 初始状态
        x_g: 目标状态
        time_forward: False 时交换参数求解（时间反向树）
        umax: 每轴加速度上限
        t_step: 碰撞检测采样时间步

    Returns:
        无碰撞轨迹，不可行时返回 None
    """
    if time_forward:
        trajectory = optimal_trajectory(x_i, x_g, umax)
    else:
        trajectory = optimal_trajectory(x_g, x_i, umax)
    if trajectory is None:
        return None

    t_max = trajectory.duration
    # k·t_step < t_max 的等间隔采样，终点单独检测一次
    n_steps = int(np.ceil(t_max / t_step - STEP_TOL))
    for k in range(n_steps + 1):
        t_sec = t_max if k == n_steps else min(k * t_step, t_max)
        state = sample_trajectory(trajectory, t_sec)
        if not free(state):
            logger.debug("steer: t=%.2f 处碰撞 %s", t_sec, state)
            return None
    return trajectory
