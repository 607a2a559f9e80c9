"""
kinoplanner - 双积分器运动学动力学 RRT* 路径规划

在四维状态空间 (x, xdot, y, ydot) 中生长以初始状态和目标状态为根的
两棵树，用 bangbang 包的闭式最优时间作为连接代价。

核心思路：
1. 在场地边界内采样无碰撞状态
2. 欧氏半径预筛选近邻，再按最优协调时间选出最近节点
3. bang-bang 转向并沿轨迹做碰撞检测，插入新节点
4. (双向) shooting 求解器连接两棵树，rewire 后提取路径
5. 记录单调改进的最优路径

参考论文:
    LaSalle et al., "Bang-Bang RRT", 2023. https://arxiv.org/pdf/2210.01744.pdf
"""

from .models import (
    Obstacle,
    Node,
    Link,
    LocalLink,
    NearNode,
    Path,
    PlannerEvent,
    PlannerConfig,
    PlannerResult,
)
from .arena import FieldArena, half_field_arena
from .spatial_index import SpatialIndex, Tree
from .graph import new_link, is_ancestor, rewire, walk_parents, generate_path
from .events import EventSink, EventRecorder, LoggingEventSink
from .sampling import UniformStateSampler
from .rrt_star import BangBangRRTStar, TreePair
from .runner import Timer, run_planner
from .visualize import plot_planner, trajectory_points

__version__ = "1.0.0"
__all__ = [
    # 数据模型
    'Obstacle',
    'Node',
    'Link',
    'LocalLink',
    'NearNode',
    'Path',
    'PlannerEvent',
    'PlannerConfig',
    'PlannerResult',
    # 场地与树
    'FieldArena',
    'half_field_arena',
    'SpatialIndex',
    'Tree',
    'new_link',
    'is_ancestor',
    'rewire',
    'walk_parents',
    'generate_path',
    # 事件
    'EventSink',
    'EventRecorder',
    'LoggingEventSink',
    # 规划
    'UniformStateSampler',
    'BangBangRRTStar',
    'TreePair',
    'Timer',
    'run_planner',
    # 可视化
    'plot_planner',
    'trajectory_points',
]
