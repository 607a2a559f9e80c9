"""
kinoplanner/rrt_star.py - Bang-bang 运动学动力学 RRT*

在四维状态空间 (x, xdot, y, ydot) 中生长两棵树：树 A 以初始状态为根
（正向时间），树 B 以目标状态为根（反向时间）。

每次 step():
1. 根据活动树的根判断时间方向
2. 采样无碰撞状态 (alpha)
3. 欧氏半径预筛选 + 最优协调时间重排序，找到最近节点 (x_n)
4. 用闭式 bang-bang 解转向并做轨迹碰撞检测
5. 插入新节点与边，边代价为协调总时间
6. (双向) 用 shooting 求解器尝试连接另一棵树的近邻节点，成功则
   插入连接边、rewire、提取路径、更新最优路径
7. (双向) 交换两棵树的角色

与 arXiv:1703.08944 不完全相同: 这里不使用 Extend，只有真正插入新节点
时才尝试连接。

参考:
    [1] LaSalle et al., "Bang-Bang RRT", 2023. https://arxiv.org/pdf/2210.01744.pdf
    [2] Hauser et al., "Optimal shortcuts", 2010.
"""

import logging
import math
from typing import List, Optional

import numpy as np

from bangbang.dynamics import Dynamics, double_integrator, rk4
from bangbang.shooting import ShootingSolver
from bangbang.steering import bang_bang_steer
from bangbang.time_optimal import t_optimal

from .arena import FieldArena
from .events import EventSink
from .graph import generate_path, new_link, rewire
from .models import LocalLink, NearNode, Node, Path, PlannerConfig, PlannerEvent
from .sampling import UniformStateSampler
from .spatial_index import Tree

logger = logging.getLogger(__name__)


class TreePair:
    """两棵树的双槽容器，用下标标记活动树，交换角色时只翻转下标

    slot 0 固定为以初始状态为根的树，slot 1 固定为以目标状态为根的树。
    """

    def __init__(self, start_tree: Tree, goal_tree: Tree) -> None:
        self.trees = (start_tree, goal_tree)
        self.active_index = 0

    @property
    def start_tree(self) -> Tree:
        return self.trees[0]

    @property
    def goal_tree(self) -> Tree:
        return self.trees[1]

    @property
    def active(self) -> Tree:
        return self.trees[self.active_index]

    @property
    def inactive(self) -> Tree:
        return self.trees[1 - self.active_index]

    def swap(self) -> None:
        self.active_index = 1 - self.active_index


class BangBangRRTStar:
    """Bang-bang RRT* 规划器

    单线程、同步；由外部驱动循环反复调用 step()，调用方负责迭代次数
    或时间预算。

    Args:
        arena: 碰撞 oracle（clear / link / bounds / initial / goal）
        sampler: 状态采样器（None 时在 arena 边界内均匀采样）
        config: 规划参数
        rng: 随机数生成器（None 时由 config.seed 创建）
        event_sink: 可选事件接收器
        shooting_solver: 树间连接与 rewire 使用的数值求解器
        dynamics: 动力学 f(x, u)

    Example:
        >>> arena = half_field_arena()
        >>> planner = BangBangRRTStar(arena, config=PlannerConfig(seed=42))
        >>> for _ in range(500):
        ...     planner.step()
        >>> path = planner.get_best_path()
    """

    def __init__(
        self,
        arena: FieldArena,
        sampler: Optional[UniformStateSampler] = None,
        config: Optional[PlannerConfig] = None,
        rng: Optional[np.random.Generator] = None,
        event_sink: Optional[EventSink] = None,
        shooting_solver: Optional[ShootingSolver] = None,
        dynamics: Dynamics = double_integrator,
    ) -> None:
        self.config = config or PlannerConfig()
        self.config.validate()

        self.arena = arena
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.sampler = sampler or UniformStateSampler.for_arena(arena, rng=self.rng)
        self.f = dynamics
        self.solver = shooting_solver or ShootingSolver(
            umax=[self.config.umax, self.config.umax],
            max_dt=self.config.dt,
            n_steps=self.config.shooting_steps,
            tolerance=self.config.shooting_tolerance,
        )
        self._min, self._max = arena.bounds()
        self._event_sink = event_sink

        self.trees = TreePair(
            Tree(arena.initial(), name='start'),
            Tree(arena.goal(), name='goal'),
        )

        self.step_no = 0
        self.radius = self.config.radius
        self.n_edges = 0
        self.first_solution_step = -1
        self.best_cost_history: List[float] = []
        self._sigma_best: Optional[Path] = None

    # ==================== 主循环 ====================

    def step(self) -> int:
        """执行一次生长

        Returns:
            本次插入的边数（0 表示本次为空操作）
        """
        self.set_step_no(self.step_no + 1)
        active = self.trees.active
        time_forward = self._same(active.root.state, self.arena.initial())

        if self.config.growth == 'explore':
            new_node = self._explore(active, time_forward)
        else:
            new_node = self._extend(active, time_forward)
        if new_node is None:
            return 0

        edges = 1
        if self.config.bidirectional:
            edges += self._connect(new_node, time_forward)
            self.swap_trees()
        self.n_edges += edges
        return edges

    def _extend(self, active: Tree, time_forward: bool) -> Optional[Node]:
        """采样 + 最近节点 + 闭式转向 + 插入"""
        x_rand = self.sample_state()
        self._emit('sample', state=x_rand)

        x_nearest = self.bang_bang_nearest(x_rand, active, time_forward)
        if x_nearest is None:
            self._emit('no_nearest', state=x_rand)
            return None

        phi = bang_bang_steer(
            self.arena.clear, x_nearest.node.state, x_rand, time_forward,
            self.config.umax, self.config.t_step,
        )
        if phi is None:
            self._emit('steer_fail', state=x_rand)
            return None

        # 从 nearest 到 rand 的无碰撞轨迹
        return self.insert_node(active, x_nearest.node, x_rand, phi.duration)

    def _explore(self, active: Tree, time_forward: bool) -> Optional[Node]:
        """随机控制前向仿真 + 插入"""
        rand_link = self.sample_free(time_forward)
        if rand_link is None:
            return None
        if not self.arena.link(rand_link.source.state, rand_link.state):
            self._emit('steer_fail', state=rand_link.state)
            return None
        return self.insert_node(active, rand_link.source, rand_link.state, rand_link.cost)

    def _connect(self, new_node: Node, time_forward: bool) -> int:
        """尝试把新节点连接到另一棵树

        另一棵树中欧氏近邻节点大多并不可达，所以逐个用 shooting
        求解器测试，找到第一个可行连接即停止。

        Returns:
            插入的边数（0 或 1）
        """
        x_near = self.near(new_node.state, self.trees.inactive)
        x1 = new_node.state
        for near_node in x_near:
            x2 = near_node.node.state
            sol = self.solver.solve(self.f, x1, x2, time_forward)
            if sol is None:
                continue
            logger.debug("树间连接 x1=%s x2=%s dt=%.4f", x1, x2, sol.dt)
            # 活动树中插入与另一棵树近邻节点同状态的连接点
            junction = self.insert_node(self.trees.active, new_node, x2.copy(), abs(sol.dt))
            self._emit('link', state=x2, cost=abs(sol.dt))
            self.rewire(self.near(junction.state, self.trees.active), junction, time_forward)

            if time_forward:
                path = self.generate_path(junction, near_node.node)
            else:
                path = self.generate_path(near_node.node, junction)
            self._update_best(path)
            return 1
        return 0

    def swap_trees(self) -> None:
        self.trees.swap()
        self._emit('swap', detail=self.trees.active.name)

    # ==================== 采样 ====================

    def sample_state(self) -> np.ndarray:
        """拒绝采样直到得到无碰撞状态（可能不终止，由 oracle 决定）"""
        while True:
            new_config = self.sampler.get()
            if self.arena.clear(new_config):
                return new_config

    def sample_free(
        self,
        time_forward: bool,
        max_attempts: Optional[int] = None,
    ) -> Optional[LocalLink]:
        """对活动树中的随机节点施加随机控制

        - 子节点数已达 max_children 的节点以 bushiness 概率继续分支
        - 控制量大小为 umax，方向随机
        - 时长在 [0, dt) 内随机；时间反向时反向积分
        - 超出边界的结果被拒绝
        - 有父边的节点: 新方向与父边方向相反的结果被拒绝（避免聚团），
          与最近节点空间距离小于 buffer 的结果被拒绝

        Args:
            time_forward: 活动树是否为正向时间
            max_attempts: 最大尝试次数，None 为不限

        Returns:
            LocalLink，尝试次数耗尽时返回 None
        """
        active = self.trees.active
        nodes = active.values()
        umax = self.config.umax
        attempts = 0
        while max_attempts is None or attempts < max_attempts:
            attempts += 1
            node_rand = nodes[int(self.rng.integers(len(nodes)))]
            # 鼓励树变长
            if node_rand.outgoing_count >= self.config.max_children:
                if self.rng.random() > self.config.bushiness:
                    continue

            x_nearest = node_rand.state
            azimuth = 2.0 * math.pi * self.rng.random()
            u = np.array([umax * math.cos(azimuth), umax * math.sin(azimuth)])
            dt = self.config.dt * self.rng.random()
            if not time_forward:
                dt *= -1.0
            x_new = rk4(self.f, x_nearest, u, dt)

            # TODO: 场地在 x 方向上应为圆柱拓扑，这里按矩形边界拒绝
            if np.any(x_new < self._min) or np.any(x_new > self._max):
                self._emit('reject', state=x_new, detail='out of bounds')
                continue

            if node_rand.incoming is not None:
                incoming = node_rand.incoming
                incoming_dx = incoming.target.state - incoming.source.state
                dx_new = x_new - x_nearest
                if float(np.dot(incoming_dx, dx_new)) < 0:
                    self._emit('reject', state=x_new, detail='reverses parent direction')
                    continue

                # 只看空间维度，同速度的点很多是正常的
                n = active.nearest(x_new)
                if n is not None:
                    new_dist = math.hypot(x_new[0] - n.node.state[0],
                                          x_new[2] - n.node.state[2])
                    if new_dist < self.config.buffer:
                        self._emit('reject', state=x_new, detail='too close')
                        continue

            if self.arena.clear(x_new):
                # 时间反向时 dt 为负
                return LocalLink(source=node_rand, state=x_new, cost=abs(dt))
        return None

    # ==================== 近邻 ====================

    def near(self, x_new: np.ndarray, tree: Tree) -> List[NearNode]:
        """欧氏半径内的节点（由近到远）

        非欧氏空间中这些节点不一定包含真正的最近节点。
        """
        return tree.near(x_new, self.radius)

    def bang_bang_nearest(
        self,
        x_initial: np.ndarray,
        tree: Tree,
        time_forward: bool,
    ) -> Optional[NearNode]:
        """按最优协调时间重排序欧氏近邻，返回代价最小的节点

        正向时间计算 t_optimal(x_initial, node)，反向时交换参数。

        Returns:
            NearNode(node, t)，近邻集合为空时返回 None
        """
        t_min = math.inf
        best_node = None
        for nn in self.near(x_initial, tree):
            if time_forward:
                t = t_optimal(x_initial, nn.node.state, self.config.umax)
            else:
                t = t_optimal(nn.node.state, x_initial, self.config.umax)
            if t < t_min:
                t_min = t
                best_node = nn.node
        if best_node is None:
            return None
        return NearNode(best_node, t_min)

    def choose_parent(self, x_near: List[NearNode], x_new: np.ndarray) -> Optional[Node]:
        """返回 x_near 中第一个能无碰撞直连 x_new 的节点（按距离排序）

        不可行的节点会从 x_near 中移除，后续不再考虑。
        """
        x_near.sort(key=lambda nn: nn.dist)
        while x_near:
            near_node = x_near.pop(0)
            if self.arena.link(near_node.node.state, x_new):
                return near_node.node
        return None

    # ==================== 树操作 ====================

    def insert_node(self, tree: Tree, source: Node, state: np.ndarray, cost: float) -> Node:
        """在 tree 中加入新节点，并建立 source → 新节点的边"""
        node = tree.new_node(state)
        new_link(source, node, cost)
        tree.add(node)
        self._emit('insert', state=node.state, cost=cost, detail=tree.name)
        logger.debug("%s 树插入节点 %d (父=%d, cost=%.4f)",
                     tree.name, node.node_id, source.node_id, cost)
        return node

    def rewire(self, x_near: List[NearNode], new_node: Node, time_forward: bool) -> int:
        """检查 x_near 中的节点是否应改为 new_node 的子节点

        由远到近遍历；根节点与 new_node 同状态的节点跳过。

        Returns:
            重新连接的节点数
        """
        n_rewired = 0
        x1 = new_node.state
        for jn in reversed(x_near):
            if jn.node.incoming is None:
                continue
            x2 = jn.node.state
            # 跳过必然出现的重复节点
            if np.allclose(x1, x2, rtol=0.0, atol=self.config.rewire_tolerance):
                continue
            sol = self.solver.solve(self.f, x1, x2, time_forward)
            if sol is None:
                continue
            if rewire(new_node, jn.node, abs(sol.dt)):
                n_rewired += 1
                self._emit('rewire', state=x2, cost=abs(sol.dt))
        return n_rewired

    def generate_path(self, x_1: Node, x_2: Node) -> Path:
        """拼接两棵树在同一状态处的路径"""
        return generate_path(x_1, x_2, tolerance=self.config.junction_tolerance)

    def _update_best(self, path: Path) -> None:
        if self._sigma_best is None:
            logger.info("首条路径 cost=%.3f (step %d)", path.distance, self.step_no)
            self.first_solution_step = self.step_no
        elif path.distance < self._sigma_best.distance:
            logger.info("更优路径 cost=%.3f (step %d)", path.distance, self.step_no)
        else:
            return
        self._sigma_best = path
        self.best_cost_history.append(path.distance)
        self._emit('best_path', cost=path.distance)

    # ==================== 参数与查询 ====================

    def set_step_no(self, step_no: int) -> None:
        """设置 step 编号；adaptive_radius 时据此缩小近邻半径"""
        if step_no < 1:
            raise ValueError(f"step_no 必须 >= 1: {step_no}")
        self.step_no = step_no
        if self.config.adaptive_radius:
            n = step_no + 1
            self.radius = self.config.gamma * (math.log(n) / n) ** 0.25

    def set_radius(self, radius: float) -> None:
        if radius < 0:
            raise ValueError(f"radius 不能为负: {radius}")
        self.radius = radius

    def get_nodes_a(self) -> List[Node]:
        """以初始状态为根的树的全部节点"""
        return self.trees.start_tree.values()

    def get_nodes_b(self) -> List[Node]:
        """以目标状态为根的树的全部节点"""
        return self.trees.goal_tree.values()

    def get_best_path(self) -> Optional[Path]:
        return self._sigma_best

    def _same(self, a: np.ndarray, b: np.ndarray) -> bool:
        return bool(np.allclose(a, b, rtol=0.0, atol=self.config.same_tolerance))

    def _emit(self, event_type: str, state: Optional[np.ndarray] = None,
              cost: Optional[float] = None, detail: str = "") -> None:
        if self._event_sink is None:
            return
        self._event_sink(PlannerEvent(
            event_type=event_type, step=self.step_no,
            state=None if state is None else np.array(state, dtype=np.float64),
            cost=cost, detail=detail,
        ))
