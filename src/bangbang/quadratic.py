"""
bangbang/quadratic.py - 二次方程实根

数值稳定的求根公式（参考 KrisLibrary planning/ParabolicRamp.cpp），
避免 -b ± sqrt(det) 相消时的精度损失。
"""

import math
from typing import List


def quadratic(a: float, b: float, c: float) -> List[float]:
    """求 a·x² + b·x + c = 0 的实根

    Args:
        a: 二次项系数
        b: 一次项系数
        c: 常数项

    Returns:
        实根列表（0、1 或 2 个），无实根或退化方程时返回空列表
    """
    if a == 0:
        if b == 0:
            # 0 = c：无解（或处处成立），都视为无根
            return []
        return [-c / b]

    if c == 0:
        # det = b²
        if b == 0:
            return [0.0]
        return [0.0, -b / a]

    det = b * b - 4.0 * a * c
    if det < 0.0:
        return []
    if det == 0.0:
        return [-b / (2.0 * a)]

    det = math.sqrt(det)
    if abs(-b - det) < abs(a):
        x1 = 0.5 * (-b + det) / a
    else:
        x1 = 2.0 * c / (-b - det)
    if abs(-b + det) < abs(a):
        x2 = 0.5 * (-b - det) / a
    else:
        x2 = 2.0 * c / (-b + det)
    return [x1, x2]
