"""URDF parser for loading planar robot models.

This module reads the subset of URDF a planar model consumes: links (with
optional inertial and visual geometry, projected onto the plane) and joints.
Joints are handed to the model builder as JointDescriptors; the resulting
model is finalized before it is returned.
"""

import logging
from collections import deque
from typing import Dict, List, Optional

import jax.numpy as jnp
import numpy as np
from jax import Array
from lxml import etree
from scipy.spatial import ConvexHull

from jax_planar.builder import JointDescriptor, finalize, parse_joint
from jax_planar.core import Model, PlaneConfig
from jax_planar.errors import StructuralError
from jax_planar.transforms import planar, so3

logger = logging.getLogger(__name__)

# Number of points used to outline round geometry
_CIRCLE_SAMPLES = 16


def load_urdf(urdf_path: str, view: str = "right", remove_fixed: bool = True) -> Model:
    """Load a URDF file and convert it to a planar Model.

    Args:
        urdf_path: Path to the URDF file to load.
        view: Plane to project onto: "front", "right" or "top".
        remove_fixed: Whether fixed joints are folded into their parents.

    Returns:
        Model: A finalized planar model.
    """
    tree = etree.parse(urdf_path)
    return _build_model(tree.getroot(), view, remove_fixed)


def parse_urdf(xml: str, view: str = "right", remove_fixed: bool = True) -> Model:
    """Same as ``load_urdf`` for a URDF document held in a string."""
    if isinstance(xml, str):
        xml = xml.encode("utf-8")
    return _build_model(etree.fromstring(xml), view, remove_fixed)


def _build_model(root, view: str, remove_fixed: bool) -> Model:
    plane = PlaneConfig.from_view(view)
    model = Model(plane)

    link_elems: Dict[str, etree._Element] = {}
    for link in root.findall('link'):
        link_elems[link.get('name')] = link

    # First pass: joint descriptors and topology
    descriptors: List[JointDescriptor] = []
    child_links = set()
    for joint in root.findall('joint'):
        descriptor = _joint_descriptor(joint)
        for name in (descriptor.parent, descriptor.child):
            if name not in link_elems:
                raise StructuralError(
                    f"joint '{descriptor.name}' references unknown link '{name}'"
                )
        child_links.add(descriptor.child)
        descriptors.append(descriptor)

    root_links = [name for name in link_elems if name not in child_links]
    if link_elems and not root_links:
        raise StructuralError("URDF has no root link; every link is a joint child")

    # Order links using breadth-first traversal from the roots
    ordered_links = []
    queue = deque(root_links)
    visited = set()
    while queue:
        current_link = queue.popleft()
        if current_link in visited:
            continue
        visited.add(current_link)
        ordered_links.append(current_link)
        for descriptor in descriptors:
            if descriptor.parent == current_link and descriptor.child not in visited:
                queue.append(descriptor.child)
    ordered_links.extend(name for name in link_elems if name not in visited)

    # Second pass: bodies, then joints in document order
    for name in ordered_links:
        body = model.new_body(name)
        body.inertia = _parse_inertia(link_elems[name], plane)
        body.geometry = _parse_geometry(link_elems[name], plane)

    for descriptor in descriptors:
        parse_joint(model, descriptor)

    return finalize(model, remove_fixed=remove_fixed)


def _floats(text: Optional[str], default: List[float]) -> np.ndarray:
    if text is None:
        return np.array(default, dtype=np.float64)
    return np.array([float(x) for x in text.split()], dtype=np.float64)


def _parse_origin(elem):
    origin_elem = elem.find('origin') if elem is not None else None
    if origin_elem is None:
        return np.zeros(3), np.zeros(3)
    xyz = _floats(origin_elem.get('xyz'), [0.0, 0.0, 0.0])
    rpy = _floats(origin_elem.get('rpy'), [0.0, 0.0, 0.0])
    return xyz, rpy


def _joint_descriptor(joint) -> JointDescriptor:
    name = joint.get('name')
    parent_elem = joint.find('parent')
    child_elem = joint.find('child')
    if parent_elem is None or child_elem is None:
        raise StructuralError(f"joint '{name}' must name both a parent and a child link")

    xyz, rpy = _parse_origin(joint)

    axis = None
    axis_elem = joint.find('axis')
    if axis_elem is not None and axis_elem.get('xyz') is not None:
        axis = _floats(axis_elem.get('xyz'), [1.0, 0.0, 0.0])

    damping = 0.0
    dynamics_elem = joint.find('dynamics')
    if dynamics_elem is not None and dynamics_elem.get('damping') is not None:
        damping = float(dynamics_elem.get('damping'))

    return JointDescriptor(
        name=name,
        type=joint.get('type', ''),
        parent=parent_elem.get('link'),
        child=child_elem.get('link'),
        xyz=xyz,
        rpy=rpy,
        axis=axis,
        damping=damping,
    )


def _parse_inertia(link, plane: PlaneConfig) -> Optional[Array]:
    """Planar spatial inertia of a link, or None without an <inertial> tag."""
    inertial = link.find('inertial')
    if inertial is None:
        return None

    mass_elem = inertial.find('mass')
    mass = float(mass_elem.get('value', 0.0)) if mass_elem is not None else 0.0
    xyz, rpy = _parse_origin(inertial)

    I3 = np.zeros((3, 3))
    inertia_elem = inertial.find('inertia')
    if inertia_elem is not None:
        i = {key: float(inertia_elem.get(key, 0.0))
             for key in ('ixx', 'ixy', 'ixz', 'iyy', 'iyz', 'izz')}
        I3 = np.array([
            [i['ixx'], i['ixy'], i['ixz']],
            [i['ixy'], i['iyy'], i['iyz']],
            [i['ixz'], i['iyz'], i['izz']],
        ])

    # Moment about the view axis, with the tensor expressed in link axes
    R = so3.from_rpy(jnp.asarray(rpy))
    I_link = R @ jnp.asarray(I3) @ R.T
    moment = plane.view_axis @ I_link @ plane.view_axis

    return planar.planar_inertia(mass, plane.project(xyz), moment)


def _parse_geometry(link, plane: PlaneConfig) -> List[Array]:
    """Visual geometry of a link as (N, 2) outlines in plane coordinates."""
    outlines = []
    for visual in link.findall('visual'):
        geometry = visual.find('geometry')
        shapes = [] if geometry is None else [elem for elem in geometry if isinstance(elem.tag, str)]
        if not shapes:
            continue
        shape = shapes[0]
        xyz, rpy = _parse_origin(visual)
        R = np.asarray(so3.from_rpy(jnp.asarray(rpy)))

        if shape.tag == 'box':
            size = _floats(shape.get('size'), [0.0, 0.0, 0.0])
            signs = np.array([[sx, sy, sz] for sx in (-1, 1) for sy in (-1, 1) for sz in (-1, 1)])
            points = signs * size / 2.0
        elif shape.tag == 'cylinder':
            radius = float(shape.get('radius', 0.0))
            length = float(shape.get('length', 0.0))
            angles = np.linspace(0.0, 2 * np.pi, _CIRCLE_SAMPLES, endpoint=False)
            ring = np.stack([radius * np.cos(angles), radius * np.sin(angles), np.zeros_like(angles)], axis=-1)
            points = np.concatenate([ring + [0.0, 0.0, length / 2.0], ring - [0.0, 0.0, length / 2.0]])
        elif shape.tag == 'sphere':
            radius = float(shape.get('radius', 0.0))
            center = np.asarray(plane.project(xyz))
            angles = np.linspace(0.0, 2 * np.pi, _CIRCLE_SAMPLES, endpoint=False)
            circle = center + radius * np.stack([np.cos(angles), np.sin(angles)], axis=-1)
            outlines.append(jnp.asarray(circle))
            continue
        else:
            logger.warning(
                "link '%s': %s geometry is not supported in planar models, skipping",
                link.get('name'), shape.tag,
            )
            continue

        projected = np.asarray(plane.project(points @ R.T + xyz))
        outlines.append(jnp.asarray(_convex_hull(projected)))
    return outlines


def _convex_hull(points: np.ndarray) -> np.ndarray:
    """Counter-clockwise convex hull of 2D points."""
    points = np.unique(np.round(points, 12), axis=0)
    # Qhull rejects fewer than three points and collinear sets
    if len(points) <= 2 or np.linalg.matrix_rank(points - points.mean(axis=0)) < 2:
        return points
    hull = ConvexHull(points)
    return points[hull.vertices]
