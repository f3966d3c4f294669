"""Tests for forward kinematics and the kinematics cache."""

import jax.numpy as jnp
import numpy as np
import pytest

from jax_planar.builder import JointDescriptor, build_model, parse_joint
from jax_planar.chain import (
    body_poses,
    body_velocities,
    do_kinematics,
    forward_kinematics,
    kinematics_cache_valid,
)
from jax_planar.core import Model, PlaneConfig
from jax_planar.errors import DimensionMismatchError, StructuralError
from jax_planar.transforms import planar


def revolute(name, parent, child, xyz=(0.0, 0.0, 0.0), axis=(0.0, 0.0, 1.0)):
    return JointDescriptor(name=name, type="revolute", parent=parent, child=child,
                           xyz=list(xyz), axis=list(axis))


def two_link_arm():
    """Top-view arm: base -j1- upper (at origin) -j2- lower (1 m along x)."""
    return build_model(
        ["base", "upper", "lower"],
        [
            revolute("j1", "base", "upper"),
            revolute("j2", "upper", "lower", xyz=(1.0, 0.0, 0.0)),
        ],
        view="top",
    )


def test_single_revolute_at_zero_matches_reference_transform():
    """With q = 0 the world transform equals the reference transform exactly."""
    model = build_model(["base", "link"], [revolute("j", "base", "link", xyz=(0.3, -0.2, 0.0))], view="top")
    assert model.featherstone.NB == 1
    assert model.featherstone.jcode.tolist() == [1]

    do_kinematics(model, jnp.zeros(1), jnp.zeros(1))
    link = model.find_link("link")
    np.testing.assert_array_equal(link.T, link.T_tree)
    np.testing.assert_array_equal(link.v, jnp.zeros(3))


def test_fk_two_link_arm():
    """Joint angles rotate downstream links about their joint origins."""
    model = two_link_arm()
    poses = forward_kinematics(model, jnp.array([np.pi / 2, 0.0]))

    assert set(poses) == {"base", "upper", "lower"}
    np.testing.assert_allclose(planar.get_position(poses["lower"]), jnp.array([0.0, 1.0]), atol=1e-12)
    np.testing.assert_allclose(planar.get_angle(poses["lower"]), np.pi / 2)

    poses = forward_kinematics(model, jnp.array([np.pi / 2, -np.pi / 2]))
    np.testing.assert_allclose(planar.get_angle(poses["lower"]), 0.0, atol=1e-12)


def test_fk_negative_axis_turns_the_other_way():
    """jsign = -1 reverses the direction of the joint coordinate."""
    model = build_model(
        ["base", "link"], [revolute("j", "base", "link", axis=(0.0, 0.0, -1.0))], view="top"
    )
    poses = forward_kinematics(model, jnp.array([0.4]))
    np.testing.assert_allclose(planar.get_angle(poses["link"]), -0.4)


def test_fk_prismatic():
    """Prismatic joints translate along their plane axis."""
    model = build_model(
        ["rail", "cart"],
        [JointDescriptor(name="x", type="prismatic", parent="rail", child="cart", axis=[0.0, 1.0, 0.0])],
        view="top",
    )
    do_kinematics(model, jnp.array([0.5]), jnp.array([2.0]))
    cart = model.find_link("cart")
    np.testing.assert_allclose(planar.get_position(cart.T), jnp.array([0.0, 0.5]))
    np.testing.assert_allclose(cart.v, jnp.array([0.0, 0.0, 2.0]))


def test_velocity_coupling_term():
    """Child velocity adds the parent's angular rate times the child's position."""
    model = two_link_arm()
    velocities = body_velocities(model, jnp.zeros(2), jnp.array([1.0, 0.5]))
    np.testing.assert_allclose(velocities["upper"], jnp.array([1.0, 0.0, 0.0]))
    np.testing.assert_allclose(velocities["lower"], jnp.array([1.5, 1.0, 0.0]))


def test_cache_idempotence():
    """A repeated call with the same coordinates performs no recomputation."""
    model = two_link_arm()
    q = jnp.array([0.3, -0.7])
    qd = jnp.array([0.1, 0.2])

    do_kinematics(model, q, qd)
    assert model.recompute_count == 1
    first = {body.link_name: (body.T, body.v) for body in model.bodies}

    do_kinematics(model, q, qd)
    assert model.recompute_count == 1
    for body in model.bodies:
        np.testing.assert_array_equal(body.T, first[body.link_name][0])
        np.testing.assert_array_equal(body.v, first[body.link_name][1])


def test_cache_tolerance():
    """Differences below the cache tolerance reuse the cached kinematics."""
    model = two_link_arm()
    do_kinematics(model, jnp.array([0.3, -0.7]))
    do_kinematics(model, jnp.array([0.3 + 1e-8, -0.7]))
    assert model.recompute_count == 1
    do_kinematics(model, jnp.array([0.3 + 1e-3, -0.7]))
    assert model.recompute_count == 2


def test_cache_invalidation_is_global():
    """Changing one dof recomputes the whole tree.

    Invalidation is deliberately global: a mismatch on any body's slice
    forces every body, including ones upstream of the change, to be
    recomputed, rather than tracking validity per body.
    """
    model = two_link_arm()
    do_kinematics(model, jnp.array([0.3, -0.7]))
    assert kinematics_cache_valid(model, jnp.array([0.3, -0.7]))
    assert not kinematics_cache_valid(model, jnp.array([0.3, 0.2]))

    upper_T = model.find_link("upper").T
    do_kinematics(model, jnp.array([0.3, 0.2]))
    assert model.recompute_count == 2
    # Recomputed, with an unchanged result for the upstream body
    assert model.find_link("upper").T is not upper_T
    np.testing.assert_allclose(model.find_link("upper").T, upper_T)


def test_velocity_change_invalidates_cache():
    """The cache key covers velocities as well as positions."""
    model = two_link_arm()
    do_kinematics(model, jnp.zeros(2), jnp.zeros(2))
    do_kinematics(model, jnp.zeros(2), jnp.array([0.0, 1.0]))
    assert model.recompute_count == 2


def test_cache_invalid_before_first_computation():
    """A fresh model has no valid cache, even for a zero-dof tree."""
    model = build_model(["base"], [], view="top")
    assert not kinematics_cache_valid(model, jnp.zeros(0))
    do_kinematics(model, jnp.zeros(0))
    assert model.recompute_count == 1
    assert kinematics_cache_valid(model, jnp.zeros(0))


@pytest.mark.parametrize(
    "q, qd",
    [
        (jnp.zeros(1), jnp.zeros(2)),
        (jnp.zeros(3), jnp.zeros(3)),
        (jnp.zeros(2), jnp.zeros(1)),
        (jnp.zeros((2, 1)), jnp.zeros(2)),
    ],
)
def test_dimension_mismatch(q, qd):
    """Coordinate vectors of the wrong size are rejected, not truncated or padded."""
    model = two_link_arm()
    with pytest.raises(DimensionMismatchError):
        do_kinematics(model, q, qd)


def test_unsorted_model_rejected():
    """Kinematics require parents to precede their children in the arena."""
    model = Model(PlaneConfig.from_view("top"))
    model.new_body("link")
    model.new_body("base")
    parse_joint(model, revolute("j", "base", "link"))
    model.assign_dof_numbers()
    with pytest.raises(StructuralError):
        do_kinematics(model, jnp.zeros(1))


def test_right_view_reflection_applies_to_world_transforms():
    """In the right view every world transform carries the root reflection."""
    model = build_model(
        ["base", "link"],
        [JointDescriptor(name="j", type="revolute", parent="base", child="link",
                         xyz=[0.5, 0.0, 1.0], axis=[0.0, 1.0, 0.0])],
        view="right",
    )
    poses = forward_kinematics(model, jnp.zeros(1))
    np.testing.assert_allclose(planar.get_position(poses["link"]), jnp.array([-0.5, 1.0]))


def test_body_poses():
    """Poses report world position and heading of every body."""
    model = two_link_arm()
    poses = body_poses(model, jnp.array([np.pi / 2, -np.pi / 4]))
    np.testing.assert_allclose(poses["base"], jnp.zeros(3), atol=1e-12)
    np.testing.assert_allclose(poses["upper"], jnp.array([0.0, 0.0, np.pi / 2]), atol=1e-12)
    np.testing.assert_allclose(poses["lower"], jnp.array([0.0, 1.0, np.pi / 4]), atol=1e-12)
