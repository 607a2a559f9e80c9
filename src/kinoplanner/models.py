"""
kinoplanner/models.py - 规划器数据模型

定义 bang-bang RRT* 规划器使用的核心数据结构：Obstacle、Node、Link、
NearNode、Path、PlannerConfig、PlannerResult、PlannerEvent。

节点所有权: 树拥有全部节点；节点的 incoming 只是指向父边的反向引用。
"""

import json
import math
import numpy as np
from pathlib import Path as FilePath
from typing import List, Dict, Optional, Any
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Obstacle:
    """二维 AABB 障碍物（工作空间 x-y 平面）

    Attributes:
        min_point: 最小角点 [x, y]
        max_point: 最大角点 [x, y]
        name: 障碍物名称（可选）
    """
    min_point: np.ndarray
    max_point: np.ndarray
    name: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.min_point, np.ndarray):
            self.min_point = np.array(self.min_point, dtype=np.float64)
        if not isinstance(self.max_point, np.ndarray):
            self.max_point = np.array(self.max_point, dtype=np.float64)
        if self.min_point.shape != (2,) or self.max_point.shape != (2,):
            raise ValueError("min_point / max_point 必须是二维点")
        if np.any(self.min_point > self.max_point):
            raise ValueError("min_point 不能大于 max_point")

    @property
    def size(self) -> np.ndarray:
        return self.max_point - self.min_point

    def to_dict(self) -> Dict[str, Any]:
        return {
            'min': self.min_point.tolist(),
            'max': self.max_point.tolist(),
            'name': self.name,
        }

    def contains_point(self, point: np.ndarray) -> bool:
        """检查 (x, y) 是否在障碍物内（含边界）"""
        return bool(np.all(point >= self.min_point) and np.all(point <= self.max_point))

    def intersects_segment(self, p: np.ndarray, q: np.ndarray) -> bool:
        """线段 p→q 是否与障碍物相交（slab 法）"""
        d = q - p
        t0, t1 = 0.0, 1.0
        for k in range(2):
            if abs(d[k]) < 1e-12:
                if p[k] < self.min_point[k] or p[k] > self.max_point[k]:
                    return False
                continue
            ta = (self.min_point[k] - p[k]) / d[k]
            tb = (self.max_point[k] - p[k]) / d[k]
            if ta > tb:
                ta, tb = tb, ta
            t0 = max(t0, ta)
            t1 = min(t1, tb)
            if t0 > t1:
                return False
        return True


@dataclass(eq=False)
class Node:
    """树节点

    Attributes:
        state: 状态 (x, xdot, y, ydot)
        node_id: 节点编号（所属树内唯一）
        incoming: 父边（根节点为 None）
        outgoing: 子边列表
    """
    state: np.ndarray
    node_id: int = -1
    incoming: Optional['Link'] = None
    outgoing: List['Link'] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not isinstance(self.state, np.ndarray):
            self.state = np.array(self.state, dtype=np.float64)

    @property
    def parent(self) -> Optional['Node']:
        return self.incoming.source if self.incoming is not None else None

    @property
    def outgoing_count(self) -> int:
        return len(self.outgoing)

    @property
    def is_root(self) -> bool:
        return self.incoming is None

    def path_cost(self) -> float:
        """从根到本节点的累计代价"""
        total = 0.0
        node = self
        seen = set()
        while node.incoming is not None:
            if id(node) in seen:
                raise RuntimeError("path_cost: 父指针存在环")
            seen.add(id(node))
            total += node.incoming.cost
            node = node.incoming.source
        return total

    def __repr__(self) -> str:
        return f"Node(id={self.node_id}, state={np.round(self.state, 3).tolist()})"


@dataclass(eq=False)
class Link:
    """有向边 source → target，代价为通过时间 (>= 0)"""
    source: Node
    target: Node
    cost: float

    def __post_init__(self) -> None:
        if self.cost < 0 or math.isnan(self.cost):
            raise ValueError(f"边代价必须非负: {self.cost}")

    def __repr__(self) -> str:
        return f"Link({self.source.node_id} -> {self.target.node_id}, cost={self.cost:.4f})"


@dataclass
class LocalLink:
    """尚未插入树的候选边: 已有节点 source → 新状态 state

    Attributes:
        source: 树中已有节点
        state: 新节点状态
        cost: 通过时间（时间反向时取绝对值）
    """
    source: Node
    state: np.ndarray
    cost: float


@dataclass
class NearNode:
    """近邻查询结果: 节点及其距离（欧氏距离或时间代价）"""
    node: Node
    dist: float


@dataclass
class Path:
    """路径: 总代价 + 两段状态序列

    states_a 是一棵树从根到连接点的序列，states_b 是从连接点（不含）
    到另一棵树根的序列。

    Attributes:
        distance: 总代价（时间）
        states_a: 第一段状态
        states_b: 第二段状态
    """
    distance: float
    states_a: List[np.ndarray] = field(default_factory=list)
    states_b: List[np.ndarray] = field(default_factory=list)

    @property
    def states(self) -> List[np.ndarray]:
        return list(self.states_a) + list(self.states_b)

    def __len__(self) -> int:
        return len(self.states_a) + len(self.states_b)


@dataclass
class PlannerEvent:
    """规划过程中的一个结构化事件

    Attributes:
        event_type: 'sample', 'no_nearest', 'steer_fail', 'insert',
                    'link', 'rewire', 'best_path', 'swap', 'reject'
        step: 所在 step 编号
        state: 相关状态（可选）
        cost: 相关代价（可选）
        detail: 附加信息
    """
    event_type: str
    step: int = 0
    state: Optional[np.ndarray] = None
    cost: Optional[float] = None
    detail: str = ""


@dataclass
class PlannerConfig:
    """Bang-bang RRT* 规划器参数配置

    Attributes:
        umax: 每轴加速度上限
        dt: 探索采样 / shooting 求解的最大前向仿真时长
        gamma: RRT* 生长参数 (>= 1.0)
        radius: 欧氏近邻半径（近邻预筛选与树间连接）
        adaptive_radius: 是否按 step 编号自动缩小半径
        max_children: 探索采样时节点的子节点上限
        bushiness: 子节点已满时仍分支的概率
        buffer: 探索采样新节点与已有节点的最小空间距离
        bidirectional: 是否尝试树间连接并交替生长两棵树
        growth: 'bangbang' (采样+闭式转向) 或 'explore' (随机控制前向仿真)
        t_step: 轨迹碰撞检测采样时间步
        shooting_steps: shooting 求解 RK4 子步数
        shooting_tolerance: shooting 终点误差容限
        same_tolerance: 判断状态相同（根是否为初始状态）的容差
        rewire_tolerance: rewire 时跳过重复状态的容差
        junction_tolerance: 路径拼接时连接点状态一致性容差
        seed: 随机数种子（未注入 rng 时使用）
    """
    umax: float = 2.5
    dt: float = 0.6
    gamma: float = 1.0
    radius: float = 3.0
    adaptive_radius: bool = False
    max_children: int = 1
    bushiness: float = 0.2
    buffer: float = 0.3
    bidirectional: bool = False
    growth: str = 'bangbang'
    t_step: float = 0.1
    shooting_steps: int = 20
    shooting_tolerance: float = 1e-3
    same_tolerance: float = 1e-4
    rewire_tolerance: float = 0.01
    junction_tolerance: float = 1e-3
    seed: Optional[int] = None

    def validate(self) -> None:
        """检查参数合法性，不合法时抛出 ValueError"""
        if self.gamma < 1.0:
            raise ValueError("invalid gamma, must be >= 1.0")
        if self.umax <= 0:
            raise ValueError(f"umax 必须为正: {self.umax}")
        if self.dt <= 0:
            raise ValueError(f"dt 必须为正: {self.dt}")
        if self.t_step <= 0:
            raise ValueError(f"t_step 必须为正: {self.t_step}")
        if self.radius < 0:
            raise ValueError(f"radius 不能为负: {self.radius}")
        if not 0.0 <= self.bushiness <= 1.0:
            raise ValueError(f"bushiness 必须在 [0, 1]: {self.bushiness}")
        if self.growth not in ('bangbang', 'explore'):
            raise ValueError(f"未知 growth 模式: {self.growth}")

    # ── JSON 序列化 ──

    def to_dict(self) -> Dict[str, Any]:
        """转为字典"""
        from dataclasses import fields as dc_fields
        return {f.name: getattr(self, f.name) for f in dc_fields(self)}

    def to_json(self, filepath: str | FilePath) -> str:
        """保存到 JSON 文件，返回文件路径字符串"""
        filepath = FilePath(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
        return str(filepath)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlannerConfig':
        """从字典创建（忽略未知字段，缺失字段用默认值）"""
        from dataclasses import fields as dc_fields
        valid_fields = {f.name for f in dc_fields(cls)}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    @classmethod
    def from_json(cls, filepath: str | FilePath) -> 'PlannerConfig':
        """从 JSON 文件加载"""
        filepath = FilePath(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)


@dataclass
class PlannerResult:
    """一次规划运行的结果

    Attributes:
        success: 是否找到路径
        path: 状态序列 [x_start, ..., x_goal]
        cost: 路径总时间（无路径时为 inf）
        n_steps: 执行的 step 次数
        n_edges: 插入的边总数
        n_nodes_a: 树 A 节点数
        n_nodes_b: 树 B 节点数
        first_solution_step: 首次找到路径的 step（无则为 -1）
        computation_time: 总计算时间 (s)
        phase_times: 各阶段耗时
        message: 描述信息
        timestamp: 时间戳
    """
    success: bool = False
    path: List[np.ndarray] = field(default_factory=list)
    cost: float = float('inf')
    n_steps: int = 0
    n_edges: int = 0
    n_nodes_a: int = 0
    n_nodes_b: int = 0
    first_solution_step: int = -1
    computation_time: float = 0.0
    phase_times: Dict[str, float] = field(default_factory=dict)
    message: str = ""
    timestamp: str = field(
        default_factory=lambda: datetime.now().strftime('%Y%m%d_%H%M%S'))

    # ── 路径序列化 ─────────────────────────────────────────

    def save_path(self, filepath: str | FilePath) -> str:
        """将规划路径保存为 JSON 文件

        Args:
            filepath: 输出 JSON 路径

        Returns:
            保存的文件路径字符串
        """
        filepath = FilePath(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data: Dict[str, Any] = {
            "success": self.success,
            "path": [np.asarray(s).tolist() for s in self.path],
            "n_waypoints": len(self.path),
            "cost": self.cost if math.isfinite(self.cost) else None,
            "n_steps": self.n_steps,
            "n_edges": self.n_edges,
            "n_nodes_a": self.n_nodes_a,
            "n_nodes_b": self.n_nodes_b,
            "first_solution_step": self.first_solution_step,
            "computation_time": self.computation_time,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        return str(filepath)

    @staticmethod
    def load_path(filepath: str | FilePath) -> Dict[str, Any]:
        """从 JSON 文件加载规划路径，path 转为 List[np.ndarray]"""
        filepath = FilePath(filepath)
        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)
        data['path'] = [np.array(s, dtype=np.float64) for s in data['path']]
        if data.get('cost') is None:
            data['cost'] = float('inf')
        return data
