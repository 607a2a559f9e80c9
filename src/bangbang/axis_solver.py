"""
bangbang/axis_solver.py - 单轴固定时间两点边值求解

给定单轴边界 (i, idot) -> (g, gdot) 与总时间 tw，求满足边界条件的
最小控制量两段 bang-bang 轨迹。

方法来自 Hauser et al., "Optimal shortcuts", 2010 (section D)：
    tw²·a² + σ·(2·tw·(idot+gdot) + 4·(i-g))·a - (gdot-idot)² = 0
σ = ±1 分别对应 "先加速后减速" 与 "先减速后加速" 两种符号分配。
"""

import logging
from typing import List, Optional

import numpy as np

from .models import Axis, Segment
from .quadratic import quadratic

logger = logging.getLogger(__name__)

ZERO_TOL = 1e-6


def _switch_time(p: float, dv: float, tw: float) -> float:
    """首段加速度大小 p、速度变化 dv 对应的切换时刻（p≈0 时整段匀速）

    先 +p 后 -p 时 dv = gdot - idot；先 -p 后 +p 时 dv = idot - gdot。
    """
    if abs(p) < ZERO_TOL:
        return tw
    return 0.5 * (tw + dv / p)


def _candidates(roots: List[float], dv: float, tw: float):
    """过滤一组根，产出 (p, ts) 可行候选"""
    for p in roots:
        if abs(p) < ZERO_TOL and len(roots) > 1:
            # 零解只有在唯一时才有效
            logger.debug("reject p=0 with two solutions")
            continue
        ts = _switch_time(p, dv, tw)
        if p < 0:
            continue
        if ts < 0:
            continue
        if ts > tw:
            # 切换时刻不能超过总时间
            continue
        yield p, ts


def slow_u(
    i: float,
    idot: float,
    g: float,
    gdot: float,
    tw: float,
) -> Optional[Axis]:
    """求固定总时间 tw 下控制量最小的单轴 bang-bang 轨迹

    Args:
        i: 初始位置
        idot: 初始速度
        g: 目标位置
        gdot: 目标速度
        tw: 协调总时间 (> 0)

    Returns:
        满足边界条件的 Axis；tw 对该轴不可行时返回 None
    """
    a = tw * tw
    b = 2.0 * tw * (idot + gdot) + 4.0 * (i - g)
    c = -1.0 * (gdot - idot) * (gdot - idot)

    plus = quadratic(a, b, c)
    minus = quadratic(a, -b, c)
    logger.debug("slow_u a=%f b=%f c=%f plus=%s minus=%s", a, b, c, plus, minus)

    best: Optional[Axis] = None
    a_min = None
    # +b 根: 先 +p 后 -p
    for p, ts in _candidates(plus, gdot - idot, tw):
        if a_min is None or p < a_min:
            a_min = p
            best = Axis(i=i, idot=idot, g=g, gdot=gdot,
                        s1=Segment(u=p, t=ts), s2=Segment(u=-p, t=tw - ts))
    # -b 根: 符号镜像，先 -m 后 +m
    for m, ts in _candidates(minus, idot - gdot, tw):
        if a_min is None or m < a_min:
            a_min = m
            best = Axis(i=i, idot=idot, g=g, gdot=gdot,
                        s1=Segment(u=-m, t=ts), s2=Segment(u=m, t=tw - ts))

    if best is None:
        logger.debug("slow_u: tw=%.4f 对该轴不可行", tw)
    return best


def sample_axis(axis: Axis, t_sec: float) -> np.ndarray:
    """在 t_sec 时刻采样单轴 (位置, 速度)

    边界处直接返回端点值，避免积分漂移。
    """
    time_total = axis.duration
    if t_sec < 0:
        return np.array([axis.i, axis.idot])
    if t_sec > time_total:
        return np.array([axis.g, axis.gdot])
    if abs(t_sec) < ZERO_TOL:
        return np.array([axis.i, axis.idot])
    if abs(t_sec - time_total) < ZERO_TOL:
        return np.array([axis.g, axis.gdot])
    if t_sec < axis.s1.t:
        # 第一段，从初始状态向前
        x = axis.i + axis.idot * t_sec + 0.5 * axis.s1.u * t_sec * t_sec
        xdot = axis.idot + axis.s1.u * t_sec
        return np.array([x, xdot])
    # 第二段，从目标状态向后
    time_to_go = time_total - t_sec
    x = axis.g - axis.gdot * time_to_go + 0.5 * axis.s2.u * time_to_go * time_to_go
    xdot = axis.gdot - axis.s2.u * time_to_go
    return np.array([x, xdot])


def propagate_axis(axis: Axis) -> np.ndarray:
    """从初始状态依次积分两段，返回终点 (位置, 速度)"""
    x, v = axis.i, axis.idot
    for seg in (axis.s1, axis.s2):
        x = x + v * seg.t + 0.5 * seg.u * seg.t * seg.t
        v = v + seg.u * seg.t
    return np.array([x, v])
