"""Tests for Featherstone-form extraction."""

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from jax_planar.builder import JointDescriptor, build_model, finalize, parse_joint
from jax_planar.core import Featherstone, Model, PlaneConfig, extract_featherstone
from jax_planar.errors import StructuralError
from jax_planar.transforms import planar


def branching_model():
    """Two planar legs hanging from a floating torso, declared out of order."""
    axis = [0.0, 1.0, 0.0]
    joints = [
        JointDescriptor(name="left_knee", type="revolute", parent="left_thigh", child="left_shin",
                        xyz=[0.0, 0.0, -0.4], axis=axis, damping=0.02),
        JointDescriptor(name="floating", type="planar", parent="world", child="torso",
                        xyz=[0.0, 0.0, 1.0], axis=axis),
        JointDescriptor(name="left_hip", type="revolute", parent="torso", child="left_thigh",
                        xyz=[0.1, 0.0, -0.2], axis=axis, damping=0.01),
        JointDescriptor(name="right_hip", type="revolute", parent="torso", child="right_thigh",
                        xyz=[-0.1, 0.0, -0.2], axis=axis, damping=0.01),
    ]
    links = ["left_shin", "world", "left_thigh", "torso", "right_thigh"]
    return build_model(links, joints, view="right")


def test_two_link_arrays():
    """Arrays follow dof order and copy each body's reference data."""
    model = build_model(
        ["base", "upper", "lower"],
        [
            JointDescriptor(name="j1", type="revolute", parent="base", child="upper",
                            axis=[0.0, 0.0, 1.0], damping=0.1),
            JointDescriptor(name="j2", type="prismatic", parent="upper", child="lower",
                            xyz=[1.0, 0.0, 0.0], axis=[1.0, 0.0, 0.0], damping=0.2),
        ],
        view="top",
    )
    fs = model.featherstone
    assert isinstance(fs, Featherstone)
    assert fs.NB == 2
    assert fs.link_names == ("upper", "lower")
    assert fs.parent.tolist() == [0, 1]
    assert fs.jcode.tolist() == [1, 2]
    np.testing.assert_allclose(fs.damping, jnp.array([0.1, 0.2]))
    np.testing.assert_array_equal(fs.X_tree[1], model.find_link("lower").X_tree)
    np.testing.assert_allclose(fs.X_tree[1], planar.xpln(0.0, jnp.array([1.0, 0.0])))
    # Bodies without inertia contribute zeros
    np.testing.assert_array_equal(fs.inertia, jnp.zeros((2, 3, 3)))


def test_parents_precede_children():
    """Every parent index is smaller than its own index, so one forward sweep suffices."""
    model = branching_model()
    fs = model.featherstone
    assert fs.NB == 6
    for i in range(1, fs.NB + 1):
        assert fs.parent[i - 1] < i

    # Array position i - 1 holds the body whose dof number is i
    for i, name in enumerate(fs.link_names, start=1):
        assert model.find_link(name).dofnum == i

    assert fs.link_names[:3] == ("floating_x", "floating_z", "torso")
    parent_names = {
        name: ("base" if p == 0 else fs.link_names[p - 1])
        for name, p in zip(fs.link_names, fs.parent.tolist())
    }
    assert parent_names["left_shin"] == "left_thigh"
    assert parent_names["right_thigh"] == "torso"
    assert parent_names["floating_x"] == "base"


def test_dof_numbers_follow_construction_order():
    """Sorting keeps construction order wherever parents allow it."""
    model = branching_model()
    order = [body.link_name for body in model.bodies]
    assert order == [
        "world", "floating_x", "floating_z", "torso", "left_thigh", "left_shin", "right_thigh",
    ]


def test_extraction_requires_reduced_model():
    """Fixed joints must be removed before extraction."""
    model = Model(PlaneConfig.from_view("top"))
    model.new_body("base")
    model.new_body("tool")
    parse_joint(model, JointDescriptor(name="weld", type="fixed", parent="base", child="tool"))
    finalize(model, remove_fixed=False)
    assert model.featherstone is None
    with pytest.raises(StructuralError):
        extract_featherstone(model)


def test_extraction_stored_on_model():
    """extract_featherstone stores its result on the model."""
    model = branching_model()
    fs = extract_featherstone(model)
    assert model.featherstone is fs


def test_featherstone_is_pytree():
    """The Featherstone form flattens and unflattens as a JAX PyTree."""
    fs = branching_model().featherstone
    leaves, tree_def = jax.tree_util.tree_flatten(fs)
    rebuilt = jax.tree_util.tree_unflatten(tree_def, leaves)
    assert rebuilt.NB == fs.NB
    assert rebuilt.link_names == fs.link_names
    np.testing.assert_array_equal(rebuilt.parent, fs.parent)
    np.testing.assert_array_equal(rebuilt.X_tree, fs.X_tree)


def test_featherstone_jit_compatibility():
    """Array fields can be consumed inside JIT-compiled functions."""
    fs = branching_model().featherstone

    @jax.jit
    def total_damping(featherstone):
        return jnp.sum(featherstone.damping)

    np.testing.assert_allclose(total_damping(fs), 0.04)
