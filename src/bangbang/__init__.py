"""
bangbang - 双积分器 bang-bang 闭式转向库

为二维解耦双积分器（状态 (x, xdot, y, ydot)，每轴 |u| <= umax）提供：
1. quadratic     - 数值稳定的二次方程求根
2. axis_solver   - 单轴固定时间两点边值问题的最小控制量解 (Hauser 2010)
3. time_optimal  - 两轴协调最优时间，处理 LaSalle 2023 的 "gap"
4. steering      - 组合上述两者并做轨迹碰撞检测的转向服务
5. dynamics      - 双积分器动力学与 RK4
6. shooting      - 通用数值 shooting 两点边值求解器 (scipy)

参考论文:
    LaSalle et al., "Bang-Bang RRT", 2023. https://arxiv.org/pdf/2210.01744.pdf
    Hauser et al., "Optimal shortcuts", ICRA 2010.
"""

from .models import Segment, Axis, Trajectory, Solution, TimeCandidate
from .quadratic import quadratic
from .axis_solver import slow_u, sample_axis, propagate_axis
from .time_optimal import (
    c_plus,
    c_minus,
    goal_right,
    t_switch,
    t_limit,
    t_mirror,
    t_optimal,
    axis_candidates,
)
from .steering import optimal_trajectory, sample_trajectory, bang_bang_steer
from .dynamics import double_integrator, rk4, integrate
from .shooting import ShootingSolver, ShootingSolution

__version__ = "1.0.0"
__all__ = [
    # 数据模型
    'Segment',
    'Axis',
    'Trajectory',
    'Solution',
    'TimeCandidate',
    # 闭式求解
    'quadratic',
    'slow_u',
    'sample_axis',
    'propagate_axis',
    'c_plus',
    'c_minus',
    'goal_right',
    't_switch',
    't_limit',
    't_mirror',
    't_optimal',
    'axis_candidates',
    # 转向
    'optimal_trajectory',
    'sample_trajectory',
    'bang_bang_steer',
    # 动力学与数值求解
    'double_integrator',
    'rk4',
    'integrate',
    'ShootingSolver',
    'ShootingSolution',
]
