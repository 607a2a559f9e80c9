"""
kinoplanner/graph.py - 树的边操作与路径提取

- new_link:       建立 source → target 的边
- rewire:         用以 new_parent 为起点的新边替换节点的入边
- walk_parents:   沿父指针回溯得到根到节点的路径（带环检测）
- generate_path:  拼接两棵树在同一连接状态处的两段路径
"""

import logging
from typing import Optional, Set

import numpy as np

from .models import Link, Node, Path

logger = logging.getLogger(__name__)


def new_link(source: Node, target: Node, cost: float) -> Link:
    """建立 source → target 的边并挂到两端节点上

    Raises:
        ValueError: target 已有入边
    """
    if target.incoming is not None:
        raise ValueError(f"节点 {target.node_id} 已有入边")
    link = Link(source=source, target=target, cost=cost)
    target.incoming = link
    source.outgoing.append(link)
    return link


def is_ancestor(candidate: Node, node: Node) -> bool:
    """candidate 是否为 node 的祖先（含 node 自身）"""
    current: Optional[Node] = node
    seen: Set[int] = set()
    while current is not None:
        if current is candidate:
            return True
        if id(current) in seen:
            raise RuntimeError("is_ancestor: 父指针存在环")
        seen.add(id(current))
        current = current.parent
    return False


def rewire(new_parent: Node, node: Node, cost: float) -> bool:
    """若经 new_parent 到达 node 更便宜，则替换 node 的入边

    根节点、会形成环的情况（node 是 new_parent 的祖先）不做替换。

    Returns:
        是否发生了替换
    """
    old_link = node.incoming
    if old_link is None:
        return False
    if is_ancestor(node, new_parent):
        logger.debug("rewire 跳过: 节点 %d 是 %d 的祖先", node.node_id, new_parent.node_id)
        return False
    new_cost = new_parent.path_cost() + cost
    old_cost = node.path_cost()
    if new_cost >= old_cost:
        return False

    old_link.source.outgoing.remove(old_link)
    link = Link(source=new_parent, target=node, cost=cost)
    node.incoming = link
    new_parent.outgoing.append(link)
    logger.debug("rewire 节点 %d: %.4f -> %.4f", node.node_id, old_cost, new_cost)
    return True


def walk_parents(node: Node, visited: Optional[Set[int]] = None) -> Path:
    """从叶节点沿入边回溯到根，返回根到叶的状态序列与总代价

    Args:
        node: 叶节点
        visited: 已访问节点 id 集合（可跨调用共享）

    Raises:
        RuntimeError: 发现环（树不变量被破坏）
    """
    if visited is None:
        visited = set()
    configs = []
    total_distance = 0.0
    while True:
        if id(node) in visited:
            logger.error("walk_parents: 在节点 %d 处发现环", node.node_id)
            raise RuntimeError(f"found a cycle at node {node.node_id}")
        visited.add(id(node))
        configs.append(node.state)
        incoming = node.incoming
        if incoming is None:
            break
        total_distance += incoming.cost
        node = incoming.source
    configs.reverse()
    return Path(distance=total_distance, states_a=configs, states_b=[])


def generate_path(x_1: Node, x_2: Node, tolerance: float = 1e-3) -> Path:
    """拼接两棵树在同一连接状态处的路径

    x_1 与 x_2 分别属于两棵树，状态相同。结果为
    root_1 → 连接点 → root_2，连接点只出现一次。

    Raises:
        ValueError: 两个连接节点状态不一致
    """
    if not np.allclose(x_1.state, x_2.state, rtol=0.0, atol=tolerance):
        raise ValueError(f"x1 {x_1.state.tolist()} != x2 {x_2.state.tolist()}")
    p_1 = walk_parents(x_1)
    p_2 = walk_parents(x_2)
    states_2 = list(reversed(p_2.states_a))
    # 连接点不重复
    states_2.pop(0)
    return Path(
        distance=p_1.distance + p_2.distance,
        states_a=p_1.states_a,
        states_b=states_2,
    )
