"""test/planner/test_rrt_star.py - BangBangRRTStar 集成测试"""
import math

import numpy as np
import pytest

from bangbang.time_optimal import t_optimal
from kinoplanner.events import EventRecorder
from kinoplanner.graph import walk_parents
from kinoplanner.models import NearNode, Path, PlannerConfig
from kinoplanner.rrt_star import BangBangRRTStar
from kinoplanner.spatial_index import Tree


def _grow(planner, n):
    return sum(planner.step() for _ in range(n))


class TestConstruction:

    def test_invalid_gamma(self, empty_field):
        with pytest.raises(ValueError, match="gamma"):
            BangBangRRTStar(empty_field, config=PlannerConfig(gamma=0.9))

    def test_initial_trees(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        assert len(planner.get_nodes_a()) == 1
        assert len(planner.get_nodes_b()) == 1
        np.testing.assert_array_equal(planner.get_nodes_a()[0].state, empty_field.initial())
        np.testing.assert_array_equal(planner.get_nodes_b()[0].state, empty_field.goal())
        assert planner.get_best_path() is None

    def test_injected_rng(self, empty_field, config):
        rng = np.random.default_rng(0)
        planner = BangBangRRTStar(empty_field, config=config, rng=rng)
        assert planner.rng is rng
        assert planner.sampler.rng is rng


class TestStep:

    def test_nodes_and_edges(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        edges = _grow(planner, 40)
        assert edges > 0
        assert len(planner.get_nodes_a()) == 1 + edges
        assert planner.trees.start_tree.n_edges == edges
        assert planner.n_edges == edges
        # 单向时目标树不生长
        assert len(planner.get_nodes_b()) == 1

    def test_no_cycles(self, walled_field, config):
        planner = BangBangRRTStar(walled_field, config=config)
        _grow(planner, 40)
        root = planner.trees.start_tree.root
        for node in planner.get_nodes_a():
            path = walk_parents(node)
            np.testing.assert_array_equal(path.states[0], root.state)

    def test_nodes_collision_free(self, walled_field, config):
        planner = BangBangRRTStar(walled_field, config=config)
        _grow(planner, 40)
        for node in planner.get_nodes_a():
            assert walled_field.clear(node.state)

    def test_edge_cost_is_optimal_time(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        _grow(planner, 20)
        for node in planner.get_nodes_a():
            if node.incoming is None:
                continue
            expected = t_optimal(node.parent.state, node.state, config.umax)
            assert node.incoming.cost == pytest.approx(expected, rel=1e-6)

    def test_deterministic_with_seed(self, walled_field):
        a = BangBangRRTStar(walled_field, config=PlannerConfig(radius=30.0, seed=11))
        b = BangBangRRTStar(walled_field, config=PlannerConfig(radius=30.0, seed=11))
        _grow(a, 25)
        _grow(b, 25)
        states_a = [n.state for n in a.get_nodes_a()]
        states_b = [n.state for n in b.get_nodes_a()]
        assert len(states_a) == len(states_b)
        for sa, sb in zip(states_a, states_b):
            np.testing.assert_array_equal(sa, sb)

    def test_tiny_radius_is_noop(self, empty_field):
        planner = BangBangRRTStar(empty_field, config=PlannerConfig(radius=1e-6, seed=0))
        assert planner.step() == 0
        assert len(planner.get_nodes_a()) == 1

    def test_events(self, empty_field, config):
        recorder = EventRecorder()
        planner = BangBangRRTStar(empty_field, config=config, event_sink=recorder)
        edges = _grow(planner, 10)
        counts = recorder.counts()
        assert counts['sample'] == 10
        assert counts.get('insert', 0) == edges
        assert all(e.step >= 1 for e in recorder.events)

    def test_unidirectional_no_path(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        _grow(planner, 10)
        assert planner.get_best_path() is None
        assert planner.first_solution_step == -1


class TestBidirectional:

    def test_swap_after_insert(self, empty_field, never_solver):
        cfg = PlannerConfig(radius=30.0, bidirectional=True, seed=3)
        planner = BangBangRRTStar(empty_field, config=cfg, shooting_solver=never_solver)
        for _ in range(20):
            before = planner.trees.active_index
            edges = planner.step()
            if edges > 0:
                assert planner.trees.active_index != before
            else:
                assert planner.trees.active_index == before
        assert len(planner.get_nodes_a()) > 1
        assert len(planner.get_nodes_b()) > 1

    def test_goal_tree_edges_reversed(self, empty_field, never_solver):
        cfg = PlannerConfig(radius=30.0, bidirectional=True, seed=3)
        planner = BangBangRRTStar(empty_field, config=cfg, shooting_solver=never_solver)
        _grow(planner, 30)
        for node in planner.get_nodes_b():
            if node.incoming is None:
                continue
            # 目标树: 轨迹从子节点出发到达父节点
            expected = t_optimal(node.state, node.parent.state, cfg.umax)
            assert node.incoming.cost == pytest.approx(expected, rel=1e-6)

    def test_connect_forward(self, near_goal_field):
        cfg = PlannerConfig(bidirectional=True, seed=1)
        planner = BangBangRRTStar(near_goal_field, config=cfg)
        edges = planner._connect(planner.trees.active.root, True)
        assert edges == 1
        path = planner.get_best_path()
        assert path is not None
        assert path.distance == pytest.approx(0.4, abs=1e-2)
        np.testing.assert_array_equal(path.states[0], near_goal_field.initial())
        np.testing.assert_array_equal(path.states[-1], near_goal_field.goal())
        assert len(planner.get_nodes_a()) == 2

    def test_connect_reversed(self, near_goal_field):
        cfg = PlannerConfig(bidirectional=True, seed=1)
        planner = BangBangRRTStar(near_goal_field, config=cfg)
        planner.swap_trees()
        edges = planner._connect(planner.trees.active.root, False)
        assert edges == 1
        path = planner.get_best_path()
        # 路径总是从初始状态指向目标状态
        np.testing.assert_array_equal(path.states[0], near_goal_field.initial())
        np.testing.assert_array_equal(path.states[-1], near_goal_field.goal())
        assert path.distance == pytest.approx(0.4, abs=1e-2)
        assert len(planner.get_nodes_b()) == 2

    def test_connect_failure(self, near_goal_field, never_solver):
        cfg = PlannerConfig(bidirectional=True, seed=1)
        planner = BangBangRRTStar(near_goal_field, config=cfg, shooting_solver=never_solver)
        assert planner._connect(planner.trees.active.root, True) == 0
        assert planner.get_best_path() is None

    @pytest.mark.parametrize("seed", [2, 7, 19])
    def test_step_links_trees(self, empty_field, fixed_solver, seed):
        cfg = PlannerConfig(radius=30.0, bidirectional=True, seed=seed)
        planner = BangBangRRTStar(empty_field, config=cfg, shooting_solver=fixed_solver)
        costs = []
        n_linked = 0
        for _ in range(30):
            before = planner.trees.active_index
            edges = planner.step()
            # 半径覆盖整个状态空间，每次插入后都能连到另一棵树
            assert edges in (0, 2)
            if edges == 2:
                n_linked += 1
                assert planner.trees.active_index != before
            else:
                assert planner.trees.active_index == before
            best = planner.get_best_path()
            if best is not None:
                costs.append(best.distance)

        assert n_linked > 0
        assert planner.first_solution_step >= 1
        # 最优路径代价单调不增
        assert all(b <= a for a, b in zip(costs, costs[1:]))
        assert planner.best_cost_history == sorted(planner.best_cost_history, reverse=True)

        path = planner.get_best_path()
        np.testing.assert_array_equal(path.states[0], empty_field.initial())
        np.testing.assert_array_equal(path.states[-1], empty_field.goal())

        n_nodes = len(planner.get_nodes_a()) + len(planner.get_nodes_b())
        assert n_nodes == planner.n_edges + 2
        for tree in (planner.trees.start_tree, planner.trees.goal_tree):
            assert tree.n_edges == tree.n_nodes - 1
            for node in tree.values():
                np.testing.assert_array_equal(walk_parents(node).states[0], tree.root.state)

    def test_best_path_monotone(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        planner.set_step_no(3)
        planner._update_best(Path(distance=5.0))
        planner.set_step_no(4)
        planner._update_best(Path(distance=7.0))
        planner._update_best(Path(distance=3.0))
        assert planner.get_best_path().distance == 3.0
        assert planner.best_cost_history == [5.0, 3.0]
        assert planner.first_solution_step == 3


class TestNearest:

    def _tree(self, planner):
        tree = Tree(np.zeros(4), name="t")
        planner.insert_node(tree, tree.root, np.array([1.0, -2.0, 0.0, 0.0]), 1.0)
        return tree

    def test_reranked_by_time(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        tree = self._tree(planner)
        query = np.array([2.0, 0.0, 0.0, 0.0])
        # 欧氏距离上根节点更近，但按时间代价 (1, -2) 更近
        nn = planner.bang_bang_nearest(query, tree, True)
        assert nn.node.state[1] == pytest.approx(-2.0)
        assert nn.dist == pytest.approx(t_optimal(query, nn.node.state, config.umax))

    def test_reversed_uses_swapped_arguments(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        tree = self._tree(planner)
        query = np.array([2.0, 0.0, 0.0, 0.0])
        nn = planner.bang_bang_nearest(query, tree, False)
        assert nn.node is tree.root
        assert nn.dist == pytest.approx(2.0 * math.sqrt(2.0 / config.umax))

    def test_empty_candidates(self, empty_field):
        planner = BangBangRRTStar(empty_field, config=PlannerConfig(radius=0.1))
        tree = Tree(np.zeros(4))
        assert planner.bang_bang_nearest(np.full(4, 3.0), tree, True) is None


class TestRewireAndParent:

    def test_rewire_through_new_node(self, empty_field, config, fixed_solver):
        planner = BangBangRRTStar(empty_field, config=config, shooting_solver=fixed_solver)
        tree = planner.trees.active
        n1 = planner.insert_node(tree, tree.root, np.array([2.0, 0.0, 1.0, 0.0]), 1.0)
        n2 = planner.insert_node(tree, n1, np.array([3.0, 0.0, 1.0, 0.0]), 1.0)
        new = planner.insert_node(tree, tree.root, np.array([1.5, 0.0, 1.0, 0.0]), 0.5)
        twin = planner.insert_node(tree, tree.root, np.array([1.5, 0.0, 1.0, 0.0]), 2.0)

        x_near = planner.near(new.state, tree)
        n_rewired = planner.rewire(x_near, new, True)

        assert n1.parent is new
        assert n2.parent is new
        assert twin.parent is tree.root
        assert n_rewired == 2
        # 根节点与同状态节点不调用求解器
        solved = [c[1] for c in fixed_solver.calls]
        assert not any(np.array_equal(s, tree.root.state) for s in solved)
        assert not any(np.array_equal(s, twin.state) for s in solved)
        assert tree.n_edges == tree.n_nodes - 1

    def test_choose_parent(self, walled_field, config):
        planner = BangBangRRTStar(walled_field, config=config)
        blocked = planner.insert_node(planner.trees.active, planner.trees.active.root,
                                      np.array([3.0, 0.0, 2.0, 0.0]), 1.0)
        visible = planner.insert_node(planner.trees.active, planner.trees.active.root,
                                      np.array([8.0, 0.0, 6.0, 0.0]), 1.0)
        x_near = [NearNode(visible, 4.0), NearNode(blocked, 1.0)]
        parent = planner.choose_parent(x_near, np.array([8.0, 0.0, 2.0, 0.0]))
        assert parent is visible
        assert all(nn.node is not blocked for nn in x_near)

    def test_choose_parent_none(self, walled_field, config):
        planner = BangBangRRTStar(walled_field, config=config)
        blocked = planner.insert_node(planner.trees.active, planner.trees.active.root,
                                      np.array([3.0, 0.0, 2.0, 0.0]), 1.0)
        x_near = [NearNode(blocked, 1.0)]
        assert planner.choose_parent(x_near, np.array([8.0, 0.0, 2.0, 0.0])) is None
        assert x_near == []


class TestExplore:

    def test_sample_free_forward(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        link = planner.sample_free(True)
        assert link.source is planner.trees.active.root
        assert 0.0 <= link.cost <= config.dt
        assert empty_field.clear(link.state)

    def test_sample_free_reversed(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        planner.swap_trees()
        link = planner.sample_free(False)
        assert link.source is planner.trees.goal_tree.root
        assert link.cost >= 0.0

    def test_sample_free_gives_up(self, empty_field):
        # max_children = 0 且 bushiness = 0: 任何节点都不会被选中
        cfg = PlannerConfig(radius=30.0, max_children=0, bushiness=0.0, seed=0)
        planner = BangBangRRTStar(empty_field, config=cfg)
        assert planner.sample_free(True, max_attempts=50) is None

    def test_explore_growth(self, walled_field):
        cfg = PlannerConfig(radius=30.0, growth='explore', seed=5)
        planner = BangBangRRTStar(walled_field, config=cfg)
        edges = _grow(planner, 30)
        assert edges > 0
        assert len(planner.get_nodes_a()) == 1 + edges
        for node in planner.get_nodes_a():
            assert walled_field.clear(node.state)
            if node.incoming is not None:
                assert 0.0 <= node.incoming.cost <= cfg.dt


class TestRadius:

    def test_set_step_no_invalid(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        with pytest.raises(ValueError):
            planner.set_step_no(0)

    def test_fixed_radius(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        planner.set_step_no(100)
        assert planner.radius == config.radius

    def test_adaptive_radius(self, empty_field):
        cfg = PlannerConfig(gamma=2.0, adaptive_radius=True)
        planner = BangBangRRTStar(empty_field, config=cfg)
        planner.set_step_no(9)
        assert planner.radius == pytest.approx(2.0 * (math.log(10) / 10) ** 0.25)
        r9 = planner.radius
        planner.set_step_no(99)
        assert planner.radius < r9

    def test_set_radius(self, empty_field, config):
        planner = BangBangRRTStar(empty_field, config=config)
        planner.set_radius(1.5)
        assert planner.radius == 1.5
        with pytest.raises(ValueError):
            planner.set_radius(-1.0)
