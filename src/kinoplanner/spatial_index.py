"""
kinoplanner/spatial_index.py - 欧氏空间索引与树存储

SpatialIndex 用 numpy 数组存储节点状态，避免 Python 对象逐个比较的开销；
近邻查询用向量化的平方距离计算。

Tree 是一个根节点加上所有可达节点及其空间索引。
欧氏距离只是启发式预筛选: 双积分器的真实连接代价是非对称、非欧氏的。
"""

import logging
from typing import Callable, List, Optional

import numpy as np

from .models import Node, NearNode

logger = logging.getLogger(__name__)


class SpatialIndex:
    """numpy-backed 节点空间索引

    Args:
        ndim: 状态维度
        cap: 初始容量（满时翻倍）
    """
    __slots__ = ('states', 'nodes', 'n', 'cap', 'ndim')

    def __init__(self, ndim: int = 4, cap: int = 1024):
        self.ndim = ndim
        self.cap = cap
        self.states = np.empty((cap, ndim), dtype=np.float64)
        self.nodes: List[Node] = []
        self.n = 0

    def __len__(self) -> int:
        return self.n

    def insert(self, node: Node) -> None:
        if self.n >= self.cap:
            self.cap *= 2
            new_s = np.empty((self.cap, self.ndim), dtype=np.float64)
            new_s[:self.n] = self.states[:self.n]
            self.states = new_s
        self.states[self.n] = node.state
        self.nodes.append(node)
        self.n += 1

    def _sq_dists(self, state: np.ndarray) -> np.ndarray:
        diffs = self.states[:self.n] - state
        return np.sum(diffs * diffs, axis=1)

    def nearest(self, state: np.ndarray) -> Optional[NearNode]:
        """欧氏最近节点，空索引返回 None"""
        if self.n == 0:
            return None
        dists = self._sq_dists(state)
        idx = int(np.argmin(dists))
        return NearNode(self.nodes[idx], float(np.sqrt(dists[idx])))

    def near(
        self,
        state: np.ndarray,
        radius: float,
        visitor: Optional[Callable[[Node, float], None]] = None,
    ) -> List[NearNode]:
        """半径内的节点，按距离由近到远

        Args:
            state: 查询状态
            radius: 欧氏半径
            visitor: 可选回调 visitor(node, dist)，按由近到远顺序调用

        Returns:
            NearNode 列表（由近到远）
        """
        if self.n == 0:
            return []
        dists = self._sq_dists(state)
        idxs = np.where(dists <= radius * radius)[0]
        order = idxs[np.argsort(dists[idxs], kind='stable')]
        result = [NearNode(self.nodes[i], float(np.sqrt(dists[i]))) for i in order]
        if visitor is not None:
            for nn in result:
                visitor(nn.node, nn.dist)
        return result


class Tree:
    """以根节点为起点的树

    不变量: 根到任一节点只有一条路径；每个非根节点恰有一条入边。

    Args:
        root_state: 根节点状态
        name: 树名称（日志用）
    """

    def __init__(self, root_state: np.ndarray, name: str = "") -> None:
        self.name = name
        self.index = SpatialIndex(ndim=len(root_state))
        self._next_id = 0
        self.root = self._new_node(root_state)
        self.index.insert(self.root)

    def _new_node(self, state: np.ndarray) -> Node:
        node = Node(state=np.array(state, dtype=np.float64), node_id=self._next_id)
        self._next_id += 1
        return node

    def new_node(self, state: np.ndarray) -> Node:
        """分配一个尚未挂入树的节点"""
        return self._new_node(state)

    def add(self, node: Node) -> None:
        """将节点加入空间索引（边由 graph.new_link 建立）"""
        self.index.insert(node)

    @property
    def n_nodes(self) -> int:
        return len(self.index)

    @property
    def n_edges(self) -> int:
        return sum(1 for n in self.index.nodes if n.incoming is not None)

    def values(self) -> List[Node]:
        return list(self.index.nodes)

    def contains(self, node: Node) -> bool:
        return any(n is node for n in self.index.nodes)

    def nearest(self, state: np.ndarray) -> Optional[NearNode]:
        return self.index.nearest(state)

    def near(self, state: np.ndarray, radius: float) -> List[NearNode]:
        return self.index.near(state, radius)

    def __repr__(self) -> str:
        return f"Tree(name={self.name!r}, n_nodes={self.n_nodes})"
