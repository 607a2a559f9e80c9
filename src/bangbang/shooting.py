"""
bangbang/shooting.py - 数值 shooting 两点边值求解器

通用（非闭式）求解器：寻找恒定控制 u (|u_k| <= umax) 与时长 dt
(0 < |dt| <= max_dt)，使 RK4 积分后的终点命中目标状态。

只用于树间连接与 rewire 这类任意状态对之间的"机会性"连接；
树内 steering 使用 steering.py 的闭式解。
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.optimize import least_squares

from .dynamics import Dynamics, integrate

logger = logging.getLogger(__name__)


@dataclass
class ShootingSolution:
    """shooting 求解结果

    Attributes:
        dt: 有符号时长（反向时间时为负）
        u: 恒定控制量
        residual: 终点误差 (L2)
    """
    dt: float
    u: np.ndarray
    residual: float = 0.0


class ShootingSolver:
    """恒定控制 shooting 求解器

    Args:
        umax: 每个控制维度的上限，如 [2.5, 2.5]
        max_dt: 最大时长
        n_steps: RK4 积分子步数
        tolerance: 终点误差容限，超过则视为无解
        min_dt: 最小时长（避免退化解）

    Example:
        >>> solver = ShootingSolver(umax=[2.5, 2.5], max_dt=0.6, n_steps=20)
        >>> sol = solver.solve(double_integrator, x1, x2, time_forward=True)
        >>> if sol is not None:
        ...     print(sol.dt, sol.u)
    """

    def __init__(
        self,
        umax: Sequence[float],
        max_dt: float,
        n_steps: int = 20,
        tolerance: float = 1e-3,
        min_dt: float = 1e-3,
    ) -> None:
        self.umax = np.asarray(umax, dtype=np.float64)
        if max_dt <= 0:
            raise ValueError(f"max_dt 必须为正: {max_dt}")
        self.max_dt = float(max_dt)
        self.n_steps = int(n_steps)
        self.tolerance = float(tolerance)
        self.min_dt = float(min(min_dt, max_dt))
        self.n_solves = 0

    def solve(
        self,
        f: Dynamics,
        x1: np.ndarray,
        x2: np.ndarray,
        time_forward: bool,
    ) -> Optional[ShootingSolution]:
        """求从 x1 到 x2 的恒定控制连接

        Args:
            f: 动力学 f(x, u)
            x1: 起点状态
            x2: 终点状态
            time_forward: False 时从 x1 反向积分 (dt < 0)

        Returns:
            ShootingSolution，误差超过容限时返回 None
        """
        self.n_solves += 1
        x1 = np.asarray(x1, dtype=np.float64)
        x2 = np.asarray(x2, dtype=np.float64)
        n_u = self.umax.shape[0]
        sign = 1.0 if time_forward else -1.0

        def residual(params: np.ndarray) -> np.ndarray:
            u = params[:n_u]
            dt = sign * params[n_u]
            return integrate(f, x1, u, dt, self.n_steps) - x2

        lower = np.concatenate([-self.umax, [self.min_dt]])
        upper = np.concatenate([self.umax, [self.max_dt]])

        best = None
        # 多个初始时长，避免陷入局部极小
        for frac in (0.5, 0.1, 0.9):
            x0 = np.concatenate([np.zeros(n_u), [self.min_dt + frac * (self.max_dt - self.min_dt)]])
            try:
                res = least_squares(residual, x0, bounds=(lower, upper))
            except ValueError as e:
                logger.debug("shooting 求解失败: %s", e)
                continue
            err = float(np.linalg.norm(res.fun))
            if best is None or err < best[0]:
                best = (err, res.x)
            if err < self.tolerance:
                break

        if best is None or best[0] >= self.tolerance:
            return None
        err, params = best
        return ShootingSolution(
            dt=sign * float(params[n_u]),
            u=params[:n_u].copy(),
            residual=err,
        )
