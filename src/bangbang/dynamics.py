"""
bangbang/dynamics.py - 二维双积分器动力学

状态 x = (x, xdot, y, ydot)，控制 u = (ux, uy)。
动力学以纯函数 f(x, u) -> xdot 表示，供 RK4 积分与 shooting 求解器使用。
"""

from typing import Callable

import numpy as np

Dynamics = Callable[[np.ndarray, np.ndarray], np.ndarray]


def double_integrator(x: np.ndarray, u: np.ndarray) -> np.ndarray:
    """两轴独立双积分器: 位置导数为速度，速度导数为控制量"""
    return np.array([x[1], u[0], x[3], u[1]], dtype=np.float64)


def rk4(f: Dynamics, x: np.ndarray, u: np.ndarray, dt: float) -> np.ndarray:
    """恒定控制下的单步四阶 Runge-Kutta（dt 可为负，即反向积分）"""
    h = dt
    k1 = f(x, u)
    k2 = f(x + 0.5 * h * k1, u)
    k3 = f(x + 0.5 * h * k2, u)
    k4 = f(x + h * k3, u)
    return x + (h / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


def integrate(
    f: Dynamics,
    x: np.ndarray,
    u: np.ndarray,
    dt: float,
    n_steps: int = 1,
) -> np.ndarray:
    """将 dt 均分为 n_steps 个 RK4 子步积分"""
    h = dt / n_steps
    state = np.asarray(x, dtype=np.float64)
    for _ in range(n_steps):
        state = rk4(f, state, u, h)
    return state
