"""
kinoplanner/visualize.py - 规划结果二维可视化

绘制场地障碍物、两棵树（位置投影）与最优路径。路径段按 bang-bang
最优轨迹采样绘制，其余树边画成直线。
"""

import logging
from typing import List, Optional

import numpy as np

from bangbang.steering import optimal_trajectory, sample_trajectory

from .models import Node

logger = logging.getLogger(__name__)

try:
    import matplotlib
    import matplotlib.pyplot as plt
    from matplotlib.collections import LineCollection
    from matplotlib.patches import Rectangle

    for font in ['SimHei', 'Microsoft YaHei', 'SimSun']:
        try:
            matplotlib.rcParams['font.sans-serif'] = (
                [font] + matplotlib.rcParams['font.sans-serif'])
            break
        except Exception:
            continue
    matplotlib.rcParams['axes.unicode_minus'] = False
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False


TREE_COLORS = {'start': '#2196F3', 'goal': '#4CAF50'}


def _tree_segments(nodes: List[Node]) -> List[np.ndarray]:
    segments = []
    for node in nodes:
        if node.incoming is None:
            continue
        src = node.incoming.source.state
        segments.append(np.array([[src[0], src[2]], [node.state[0], node.state[2]]]))
    return segments


def trajectory_points(states: List[np.ndarray], umax: float,
                      t_step: float = 0.05) -> np.ndarray:
    """把路径状态序列展开为 (N, 2) 位置点

    相邻状态之间按最优 bang-bang 轨迹采样；无解时退化为直线。
    """
    points = []
    for x_i, x_g in zip(states[:-1], states[1:]):
        traj = optimal_trajectory(x_i, x_g, umax)
        if traj is None:
            points.append([x_i[0], x_i[2]])
            continue
        for t in np.arange(0.0, traj.duration, t_step):
            s = sample_trajectory(traj, t)
            points.append([s[0], s[2]])
    if states:
        points.append([states[-1][0], states[-1][2]])
    return np.array(points, dtype=np.float64).reshape(-1, 2)


def plot_planner(planner, ax=None, title: str = "Bang-bang RRT*",
                 show_trees: bool = True):
    """绘制规划器当前状态

    Args:
        planner: BangBangRRTStar 实例
        ax: matplotlib Axes，None 时新建
        title: 图标题
        show_trees: 是否绘制树边

    Returns:
        matplotlib Axes
    """
    if not HAS_MATPLOTLIB:
        raise ImportError("plot_planner 需要 matplotlib: pip install matplotlib")

    if ax is None:
        _, ax = plt.subplots(1, 1, figsize=(10, 5))

    arena = planner.arena
    for obs in arena.get_obstacles():
        rect = Rectangle(
            (obs.min_point[0], obs.min_point[1]),
            obs.size[0], obs.size[1],
            linewidth=1, edgecolor='red', facecolor='red', alpha=0.4,
        )
        ax.add_patch(rect)

    if show_trees:
        for name, nodes in (('start', planner.get_nodes_a()),
                            ('goal', planner.get_nodes_b())):
            segs = _tree_segments(nodes)
            if segs:
                ax.add_collection(LineCollection(
                    segs, colors=TREE_COLORS[name], linewidths=0.6, alpha=0.5))
            xy = np.array([[n.state[0], n.state[2]] for n in nodes])
            ax.plot(xy[:, 0], xy[:, 1], '.', color=TREE_COLORS[name],
                    markersize=2, label=f"{name} tree ({len(nodes)})")

    best = planner.get_best_path()
    if best is not None:
        pts = trajectory_points(best.states, planner.config.umax)
        ax.plot(pts[:, 0], pts[:, 1], '-', color='#FF5722', linewidth=2.0,
                label=f"best path (t={best.distance:.2f}s)", zorder=5)

    x0, xg = arena.initial(), arena.goal()
    ax.plot(x0[0], x0[2], 'o', color='black', markersize=8, zorder=6)
    ax.plot(xg[0], xg[2], '*', color='black', markersize=12, zorder=6)

    lo, hi = arena.bounds()
    ax.set_xlim(lo[0], hi[0])
    ax.set_ylim(lo[2], hi[2])
    ax.set_aspect('equal')
    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    ax.legend(loc='upper left', fontsize=8)
    return ax
