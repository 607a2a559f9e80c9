"""test/planner/test_models.py - 数据模型与配置序列化"""
import json
import math

import numpy as np
import pytest

from kinoplanner.models import (
    Link,
    Node,
    Obstacle,
    Path,
    PlannerConfig,
    PlannerResult,
)


class TestObstacle:

    def test_contains_point(self):
        obs = Obstacle([5.0, 0.0], [6.0, 5.0])
        assert obs.contains_point(np.array([5.5, 2.0]))
        assert obs.contains_point(np.array([5.0, 0.0]))
        assert not obs.contains_point(np.array([4.9, 2.0]))

    def test_segment_through(self):
        obs = Obstacle([5.0, 0.0], [6.0, 5.0])
        assert obs.intersects_segment(np.array([4.0, 1.0]), np.array([7.0, 1.0]))

    def test_segment_above(self):
        obs = Obstacle([5.0, 0.0], [6.0, 5.0])
        assert not obs.intersects_segment(np.array([4.0, 6.0]), np.array([7.0, 6.0]))

    def test_segment_short_of_box(self):
        obs = Obstacle([5.0, 0.0], [6.0, 5.0])
        assert not obs.intersects_segment(np.array([1.0, 1.0]), np.array([4.5, 1.0]))

    def test_invalid_corners(self):
        with pytest.raises(ValueError):
            Obstacle([6.0, 0.0], [5.0, 5.0])
        with pytest.raises(ValueError):
            Obstacle([0.0, 0.0, 0.0], [1.0, 1.0, 1.0])

    def test_to_dict(self):
        d = Obstacle([1.0, 2.0], [3.0, 4.0], name="box").to_dict()
        assert d == {'min': [1.0, 2.0], 'max': [3.0, 4.0], 'name': 'box'}


class TestNodeLink:

    def test_root(self):
        node = Node(state=[1.0, 0.0, 1.0, 0.0])
        assert node.is_root
        assert node.parent is None
        assert node.path_cost() == 0.0
        assert isinstance(node.state, np.ndarray)

    def test_negative_cost_rejected(self):
        a, b = Node(np.zeros(4)), Node(np.ones(4))
        with pytest.raises(ValueError):
            Link(a, b, -0.1)
        with pytest.raises(ValueError):
            Link(a, b, float('nan'))

    def test_identity_equality(self):
        # 同状态的两个节点不是同一个节点
        a, b = Node(np.zeros(4)), Node(np.zeros(4))
        assert a != b
        assert a == a


class TestPath:

    def test_states_concatenated(self):
        p = Path(distance=1.5, states_a=[np.zeros(4), np.ones(4)],
                 states_b=[np.full(4, 2.0)])
        assert len(p) == 3
        np.testing.assert_array_equal(p.states[-1], np.full(4, 2.0))


class TestPlannerConfig:

    def test_defaults_valid(self):
        PlannerConfig().validate()

    def test_gamma_too_small(self):
        with pytest.raises(ValueError, match="gamma"):
            PlannerConfig(gamma=0.5).validate()

    @pytest.mark.parametrize("kwargs", [
        {'umax': 0.0},
        {'dt': -1.0},
        {'t_step': 0.0},
        {'radius': -1.0},
        {'bushiness': 1.5},
        {'growth': 'teleport'},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            PlannerConfig(**kwargs).validate()

    def test_json_roundtrip(self, tmp_path):
        cfg = PlannerConfig(umax=1.5, bidirectional=True, growth='explore', seed=7)
        path = cfg.to_json(tmp_path / "sub" / "config.json")
        loaded = PlannerConfig.from_json(path)
        assert loaded == cfg

    def test_from_dict_ignores_unknown(self):
        cfg = PlannerConfig.from_dict({'umax': 3.0, 'no_such_field': 1})
        assert cfg.umax == 3.0
        assert cfg.dt == PlannerConfig().dt


class TestPlannerResult:

    def test_save_load_path(self, tmp_path):
        result = PlannerResult(
            success=True,
            path=[np.array([1.0, 0.0, 1.0, 0.0]), np.array([2.0, 0.5, 1.5, 0.0])],
            cost=1.25,
            n_steps=10,
        )
        filepath = result.save_path(tmp_path / "path.json")
        data = PlannerResult.load_path(filepath)
        assert data['success'] is True
        assert data['n_waypoints'] == 2
        assert data['cost'] == pytest.approx(1.25)
        np.testing.assert_array_equal(data['path'][1], [2.0, 0.5, 1.5, 0.0])

    def test_save_failed_result(self, tmp_path):
        filepath = PlannerResult().save_path(tmp_path / "empty.json")
        with open(filepath, encoding='utf-8') as f:
            raw = json.load(f)
        assert raw['cost'] is None
        assert math.isinf(PlannerResult.load_path(filepath)['cost'])
