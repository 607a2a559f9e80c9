"""
kinoplanner/sampling.py - 状态采样器

在状态边界内均匀采样；随机数生成器由构造函数注入以保证可复现。
"""

from typing import Optional, Tuple

import numpy as np


class UniformStateSampler:
    """在 [state_min, state_max] 内均匀采样

    Args:
        bounds: (state_min, state_max)
        rng: numpy Generator，None 时用 seed 创建
        seed: 随机数种子
    """

    def __init__(
        self,
        bounds: Tuple[np.ndarray, np.ndarray],
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ) -> None:
        lo, hi = bounds
        self.lows = np.asarray(lo, dtype=np.float64)
        self.highs = np.asarray(hi, dtype=np.float64)
        if self.lows.shape != self.highs.shape:
            raise ValueError("采样边界维度不匹配")
        self.rng = rng if rng is not None else np.random.default_rng(seed)
        self.n_samples = 0

    def get(self) -> np.ndarray:
        self.n_samples += 1
        return self.rng.uniform(self.lows, self.highs)

    @classmethod
    def for_arena(cls, arena, rng: Optional[np.random.Generator] = None,
                  seed: Optional[int] = None) -> 'UniformStateSampler':
        return cls(arena.bounds(), rng=rng, seed=seed)
