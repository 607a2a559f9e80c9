"""
kinoplanner/runner.py - 规划驱动循环与阶段计时

规划器本身只提供 step()；迭代次数、时间预算与结果汇总由这里负责。
"""

import logging
import time
from contextlib import contextmanager
from typing import Dict, Optional

from .models import PlannerResult
from .rrt_star import BangBangRRTStar

logger = logging.getLogger(__name__)


class Timer:
    """阶段计时器，同名阶段多次进入时累加耗时"""

    def __init__(self):
        self.records: Dict[str, float] = {}

    @contextmanager
    def phase(self, name: str):
        """记录 name 阶段的耗时 (秒)."""
        t0 = time.perf_counter()
        try:
            yield
        finally:
            self.records[name] = self.records.get(name, 0.0) + time.perf_counter() - t0

    @property
    def total(self) -> float:
        return sum(self.records.values())

    def to_dict(self) -> dict:
        return {**self.records, "total": self.total}

    def summary(self, unit: str = "ms") -> str:
        """返回格式化汇总字符串."""
        mul = 1000.0 if unit == "ms" else 1.0
        lines = [f"  {name:20s}: {sec * mul:8.1f} {unit}"
                 for name, sec in self.records.items()]
        lines.append(f"  {'TOTAL':20s}: {self.total * mul:8.1f} {unit}")
        return "\n".join(lines)


def run_planner(
    planner: BangBangRRTStar,
    n_steps: int,
    timeout: Optional[float] = None,
) -> PlannerResult:
    """反复调用 planner.step() 并汇总结果

    Args:
        planner: 规划器实例
        n_steps: 最大 step 次数
        timeout: 墙钟时间上限 (s)，None 为不限

    Returns:
        PlannerResult
    """
    if n_steps < 0:
        raise ValueError(f"n_steps 不能为负: {n_steps}")

    timer = Timer()
    t0 = time.perf_counter()
    steps_done = 0
    n_edges = 0
    hit_timeout = False

    with timer.phase("grow"):
        for _ in range(n_steps):
            if timeout is not None and time.perf_counter() - t0 > timeout:
                hit_timeout = True
                break
            n_edges += planner.step()
            steps_done += 1

    with timer.phase("extract"):
        best = planner.get_best_path()
        result = PlannerResult(
            n_steps=steps_done,
            n_edges=n_edges,
            n_nodes_a=len(planner.get_nodes_a()),
            n_nodes_b=len(planner.get_nodes_b()),
            first_solution_step=planner.first_solution_step,
        )
        if best is not None:
            result.success = True
            result.path = [s.copy() for s in best.states]
            result.cost = best.distance

    result.computation_time = time.perf_counter() - t0
    result.phase_times = timer.to_dict()
    if result.success:
        result.message = f"找到路径，cost={result.cost:.3f}，{len(result.path)} 个路径点"
    elif hit_timeout:
        result.message = f"超时 ({timeout:.1f}s)，未找到路径"
    else:
        result.message = f"{steps_done} 步内未找到路径"

    logger.info("规划结束: %s (steps=%d, edges=%d, nodes=%d/%d, %.3fs)",
                result.message, steps_done, n_edges,
                result.n_nodes_a, result.n_nodes_b, result.computation_time)
    logger.debug("阶段耗时:\n%s", timer.summary())
    return result
