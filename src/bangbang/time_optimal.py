"""
bangbang/time_optimal.py - 两轴协调最优时间

每个轴单独求解，再放慢较快的轴使两轴同时到达，同时要遵守
LaSalle et al. [1] (proposition 1) 指出的 "gap"：对同一轴，
(t_limit, t_mirror) 区间内不存在单次切换 bang-bang 解。

相平面几何:
    c_plus(x, xdot)  = x - xdot² / (2·umax)    # +umax 抛物线与位置轴交点
    c_minus(x, xdot) = x - xdot² / (-2·umax)   # -umax 抛物线与位置轴交点

两种切换拓扑:
    I+G-: 从初始状态沿 +umax 抛物线出发，切换到经过目标的 -umax 抛物线
    I-G+: 从初始状态沿 -umax 抛物线出发，切换到经过目标的 +umax 抛物线
切换位置为两条相关抛物线截距的中点。

参考:
    [1] LaSalle et al., "Bang-Bang RRT", 2023. https://arxiv.org/pdf/2210.01744.pdf
"""

import logging
import math
from typing import List

import numpy as np

from .models import Solution, TimeCandidate

logger = logging.getLogger(__name__)

# 两段时长允许的负向数值误差
LEG_TOL = 1e-9

# 候选时间的取整精度，小于 TIME_TOL 的视为 0
TIME_TOL = 1e-9
TIME_DECIMALS = 9


def c_plus(x: float, xdot: float, umax: float) -> float:
    """经过状态的 +umax 抛物线截距"""
    return x - xdot * xdot / (2.0 * umax)


def c_minus(x: float, xdot: float, umax: float) -> float:
    """经过状态的 -umax 抛物线截距"""
    return x - xdot * xdot / (-2.0 * umax)


def goal_right(i: float, idot: float, g: float, gdot: float, umax: float) -> bool:
    """目标是否位于经过初始状态的切换曲线右侧"""
    if gdot > idot:
        return c_plus(g, gdot, umax) > c_plus(i, idot, umax)
    return c_minus(g, gdot, umax) > c_minus(i, idot, umax)


def _sqrt(v: float) -> float:
    """负数返回 NaN，不抛异常"""
    if v < 0 or math.isnan(v):
        return float('nan')
    return math.sqrt(v)


def q_switch_iplus_gminus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I+G- 路径切换位置"""
    return (c_plus(i, idot, umax) + c_minus(g, gdot, umax)) / 2.0


def q_switch_iminus_gplus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I-G+ 路径切换位置"""
    return (c_minus(i, idot, umax) + c_plus(g, gdot, umax)) / 2.0


def qdot_switch_iplus_gminus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I+G- 路径切换速度（正根）"""
    return _sqrt(2.0 * umax * (q_switch_iplus_gminus(i, idot, g, gdot, umax)
                               - c_plus(i, idot, umax)))


def qdot_switch_iminus_gplus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I-G+ 路径切换速度（负根）"""
    return -1.0 * _sqrt(2.0 * umax * (q_switch_iminus_gplus(i, idot, g, gdot, umax)
                                      - c_plus(g, gdot, umax)))


def qdot_limit_iplus_gminus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I+G- 路径 limit 速度（负根）"""
    return -1.0 * qdot_switch_iplus_gminus(i, idot, g, gdot, umax)


def qdot_limit_iminus_gplus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I-G+ 路径 limit 速度（正根）"""
    return -1.0 * qdot_switch_iminus_gplus(i, idot, g, gdot, umax)


def _legs_iplus_gminus(qdot: float, idot: float, gdot: float, umax: float):
    """I+G-: 先以 +umax 加速到 qdot，再以 -umax 减速到 gdot"""
    return (qdot - idot) / umax, (gdot - qdot) / (-1.0 * umax)


def _legs_iminus_gplus(qdot: float, idot: float, gdot: float, umax: float):
    """I-G+: 先以 -umax 减速到 qdot，再以 +umax 加速到 gdot"""
    return (qdot - idot) / (-1.0 * umax), (gdot - qdot) / umax


def _total(legs) -> float:
    """两段总时间；任一段为负或 NaN 时路径不可行，返回 NaN"""
    t1, t2 = legs
    if math.isnan(t1) or math.isnan(t2):
        return float('nan')
    if t1 < -LEG_TOL or t2 < -LEG_TOL:
        return float('nan')
    return max(t1, 0.0) + max(t2, 0.0)


def _feasible(t: float) -> bool:
    return not math.isnan(t) and 0 <= t <= 1e100


def t_switch_iplus_gminus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I+G- 路径经过 x_switch 的总时间"""
    qdot = qdot_switch_iplus_gminus(i, idot, g, gdot, umax)
    return _total(_legs_iplus_gminus(qdot, idot, gdot, umax))


def t_switch_iminus_gplus(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """I-G+ 路径经过 x_switch 的总时间"""
    qdot = qdot_switch_iminus_gplus(i, idot, g, gdot, umax)
    return _total(_legs_iminus_gplus(qdot, idot, gdot, umax))


def t_switch(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """单轴经过切换面的最快时间

    I+G- 与 I-G+ 两种拓扑中取可行者；都可行时取较快者。
    都不可行时返回 NaN，由 t_optimal 丢弃。
    """
    t_ipgm = t_switch_iplus_gminus(i, idot, g, gdot, umax)
    t_imgp = t_switch_iminus_gplus(i, idot, g, gdot, umax)

    ok_ipgm = _feasible(t_ipgm)
    ok_imgp = _feasible(t_imgp)
    if ok_ipgm and ok_imgp:
        return min(t_ipgm, t_imgp)
    if ok_ipgm:
        return t_ipgm
    if ok_imgp:
        return t_imgp
    logger.warning("t_switch 无可行拓扑: i=%f idot=%f g=%f gdot=%f", i, idot, g, gdot)
    return float('nan')


def _slow_limit(i: float, idot: float, g: float, gdot: float, umax: float):
    """选出 limit 速度较小的拓扑，返回 (qdot_limit, 是否为 I+G-)；无解时 qdot 为 NaN"""
    q_ipgm = qdot_limit_iplus_gminus(i, idot, g, gdot, umax)
    q_imgp = qdot_limit_iminus_gplus(i, idot, g, gdot, umax)
    if math.isnan(q_ipgm) or math.isnan(q_imgp):
        return float('nan'), True
    if abs(q_ipgm) > abs(q_imgp):
        return q_imgp, False
    return q_ipgm, True


def t_limit(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """不穿越零速度的最慢路径时间

    t_limit 与 t_mirror 之差即 "gap"。
    """
    qdot_limit, iplus = _slow_limit(i, idot, g, gdot, umax)
    if math.isnan(qdot_limit):
        return float('nan')
    if iplus:
        return _total(_legs_iplus_gminus(qdot_limit, idot, gdot, umax))
    return _total(_legs_iminus_gplus(qdot_limit, idot, gdot, umax))


def t_mirror(i: float, idot: float, g: float, gdot: float, umax: float) -> float:
    """穿越零速度的最慢路径时间（t_limit 加上镜像修正项）"""
    limit = t_limit(i, idot, g, gdot, umax)
    if math.isnan(limit):
        return float('nan')
    qdot_limit, iplus = _slow_limit(i, idot, g, gdot, umax)
    if iplus:
        return limit + 2.0 * qdot_limit / (-1.0 * umax) - 2.0 * qdot_limit / umax
    return limit + 2.0 * qdot_limit / umax - 2.0 * qdot_limit / (-1.0 * umax)


def _snap(t: float) -> float:
    """排序键：抹平舍入噪声，使本应相等的候选时间真正相等"""
    if abs(t) < TIME_TOL:
        return 0.0
    return round(t, TIME_DECIMALS)


def _put(opts: List[TimeCandidate], t: float, solution: Solution) -> None:
    if math.isnan(t):
        return
    if _snap(t) >= 0:
        opts.append(TimeCandidate(t, solution))


def axis_candidates(
    i: float, idot: float, g: float, gdot: float, umax: float,
) -> List[TimeCandidate]:
    """单轴三种候选时间（已丢弃 NaN / 负值）"""
    opts: List[TimeCandidate] = []
    _put(opts, t_switch(i, idot, g, gdot, umax), Solution.SWITCH)
    _put(opts, t_limit(i, idot, g, gdot, umax), Solution.LIMIT)
    _put(opts, t_mirror(i, idot, g, gdot, umax), Solution.MIRROR)
    return opts


def t_optimal(x_i: np.ndarray, x_g: np.ndarray, umax: float) -> float:
    """从 x_i 到 x_g 的最快协调时间

    时间反向时由调用方交换参数。

    Args:
        x_i: 初始状态 (x, xdot, y, ydot)（正向时间）
        x_g: 目标状态 (x, xdot, y, ydot)
        umax: 每轴加速度上限

    Returns:
        两轴同时存在 bang-bang 解的最小总时间

    Raises:
        ValueError: 候选列表耗尽仍未找到协调时间（解析不变量被破坏）
    """
    xi, xidot, yi, yidot = (float(v) for v in x_i)
    xg, xgdot, yg, ygdot = (float(v) for v in x_g)

    x_args = (xi, xidot, xg, xgdot, umax)
    y_args = (yi, yidot, yg, ygdot, umax)
    x_switch, y_switch = t_switch(*x_args), t_switch(*y_args)
    x_limit, y_limit = t_limit(*x_args), t_limit(*y_args)
    x_mirror, y_mirror = t_mirror(*x_args), t_mirror(*y_args)

    opts: List[TimeCandidate] = []
    _put(opts, x_switch, Solution.SWITCH)
    _put(opts, y_switch, Solution.SWITCH)
    _put(opts, x_limit, Solution.LIMIT)
    _put(opts, y_limit, Solution.LIMIT)
    _put(opts, x_mirror, Solution.MIRROR)
    _put(opts, y_mirror, Solution.MIRROR)
    # 稳定排序：同一时刻按加入顺序计数 (xS, yS, xL, yL, xM, yM)
    opts.sort(key=lambda item: _snap(item.t))

    solved = 0
    for item in opts:
        if item.solution is Solution.LIMIT:
            solved -= 1
        else:
            solved += 1
        if solved == 2:
            return max(item.t, 0.0)

    # 对任何实数边界值都不应发生
    raise ValueError(
        f"t_optimal 未找到协调时间: x_i={np.asarray(x_i).tolist()} "
        f"x_g={np.asarray(x_g).tolist()} "
        f"x=({x_switch}, {x_limit}, {x_mirror}) y=({y_switch}, {y_limit}, {y_mirror})"
    )
