#!/usr/bin/env python3

from __future__ import annotations

from dataclasses import dataclass, field
import io
import os
from typing import Optional, Sequence
from urllib.parse import urljoin

import httpx
import numpy as np
from scipy.spatial.transform import Rotation


class AssetLoadError(RuntimeError):
    pass


@dataclass
class SceneObject:
    """Wireframe mesh with a scale / rotation / position transform."""

    name: str
    vertices: np.ndarray
    edges: np.ndarray
    scale: tuple[float, float, float] = (1.0, 1.0, 1.0)
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation_deg: tuple[float, float, float] = (0.0, 0.0, 0.0)
    color: tuple[int, int, int] = (220, 220, 220)

    def model_matrix(self) -> np.ndarray:
        M = np.eye(4, dtype=float)
        R = Rotation.from_euler("XYZ", self.rotation_deg, degrees=True).as_matrix()
        M[:3, :3] = R @ np.diag(np.asarray(self.scale, dtype=float))
        M[:3, 3] = np.asarray(self.position, dtype=float)
        return M

    def world_vertices(self) -> np.ndarray:
        homo = np.hstack([self.vertices, np.ones((len(self.vertices), 1))])
        return (self.model_matrix() @ homo.T).T[:, :3]


@dataclass
class Scene:
    objects: list[SceneObject] = field(default_factory=list)

    def add(self, obj: SceneObject) -> None:
        self.objects.append(obj)

    def find(self, name: str) -> Optional[SceneObject]:
        for obj in self.objects:
            if obj.name == name:
                return obj
        return None


def validate_wireframe(vertices: np.ndarray, edges: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    vertices = np.asarray(vertices, dtype=float)
    edges = np.asarray(edges)
    if vertices.ndim != 2 or vertices.shape[1] != 3 or len(vertices) == 0:
        raise AssetLoadError(f"vertices must be a non-empty Nx3 array, got shape {vertices.shape}")
    if not np.all(np.isfinite(vertices)):
        raise AssetLoadError("vertices contain non-finite values")
    if edges.ndim != 2 or edges.shape[1] != 2:
        raise AssetLoadError(f"edges must be an Mx2 array, got shape {edges.shape}")
    if not np.issubdtype(edges.dtype, np.integer):
        raise AssetLoadError(f"edges must be integer indices, got {edges.dtype}")
    if edges.size and (edges.min() < 0 or edges.max() >= len(vertices)):
        raise AssetLoadError("edge index out of range")
    return vertices, edges.astype(np.int64)


def resolve_asset_location(location: str, host: str = "") -> str:
    if location.startswith(("http://", "https://")):
        return location
    if host and not os.path.isabs(location):
        return urljoin(host.rstrip("/") + "/", location.lstrip("/"))
    return location


def load_asset(location: str, *, host: str = "", timeout_s: float = 10.0) -> tuple[np.ndarray, np.ndarray]:
    """Load an ``.npz`` wireframe (``vertices`` Nx3, ``edges`` Mx2) from a path or URL."""
    resolved = resolve_asset_location(location, host)
    try:
        if resolved.startswith(("http://", "https://")):
            response = httpx.get(resolved, timeout=timeout_s, follow_redirects=True)
            response.raise_for_status()
            source = io.BytesIO(response.content)
        else:
            if not os.path.exists(resolved):
                raise AssetLoadError(f"asset not found: {resolved}")
            source = resolved
        data = np.load(source, allow_pickle=False)
        if not hasattr(data, "files"):
            raise AssetLoadError(f"asset {resolved} is not an .npz archive")
        with data:
            if "vertices" not in data.files or "edges" not in data.files:
                raise AssetLoadError(f"asset {resolved} needs 'vertices' and 'edges' arrays")
            vertices, edges = data["vertices"], data["edges"]
    except AssetLoadError:
        raise
    except httpx.HTTPError as exc:
        raise AssetLoadError(f"failed to fetch asset {resolved}: {exc}") from exc
    except (OSError, ValueError) as exc:
        raise AssetLoadError(f"failed to read asset {resolved}: {exc}") from exc
    return validate_wireframe(vertices, edges)


_BOX_EDGES = np.array(
    [
        (0, 1), (1, 3), (3, 2), (2, 0),
        (4, 5), (5, 7), (7, 6), (6, 4),
        (0, 4), (1, 5), (2, 6), (3, 7),
    ],
    dtype=np.int64,
)


def box_wireframe(center: Sequence[float], size: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    c = np.asarray(center, dtype=float)
    half = np.asarray(size, dtype=float) * 0.5
    corners = np.array(
        [
            c + half * np.array([x, y, z])
            for x in (-1, 1)
            for y in (-1, 1)
            for z in (-1, 1)
        ],
        dtype=float,
    )
    return corners, _BOX_EDGES.copy()


def street_wireframe(blocks: int = 6, seed: int = 7) -> tuple[np.ndarray, np.ndarray]:
    """Procedural street: two rows of buildings along -Z over a ground grid."""
    rng = np.random.default_rng(seed)
    parts: list[tuple[np.ndarray, np.ndarray]] = []
    for side in (-1.0, 1.0):
        for i in range(blocks):
            height = float(rng.uniform(2.0, 8.0))
            depth = float(rng.uniform(1.2, 1.8))
            center = (side * 4.0, height * 0.5, -2.0 * i - 1.0)
            parts.append(box_wireframe(center, (3.0, height, depth)))

    span_z = 2.0 * blocks
    grid_v = []
    for x in np.linspace(-6.0, 6.0, 7):
        grid_v.extend([(x, 0.0, 0.0), (x, 0.0, -span_z)])
    for z in np.linspace(0.0, -span_z, blocks + 1):
        grid_v.extend([(-6.0, 0.0, z), (6.0, 0.0, z)])
    grid_v = np.asarray(grid_v, dtype=float)
    grid_e = np.arange(len(grid_v), dtype=np.int64).reshape(-1, 2)
    parts.append((grid_v, grid_e))

    vertices, edges, offset = [], [], 0
    for v, e in parts:
        vertices.append(v)
        edges.append(e + offset)
        offset += len(v)
    return np.vstack(vertices), np.vstack(edges)


def build_scene(
    asset_location: str,
    *,
    asset_host: str = "",
    scale: tuple[float, float, float] = (1.0, 1.0, 1.0),
    position: tuple[float, float, float] = (0.0, 0.0, 0.0),
    rotation_deg: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> Scene:
    """Scene with the configured asset; a failed load leaves the scene without it."""
    scene = Scene()
    try:
        if asset_location:
            vertices, edges = load_asset(asset_location, host=asset_host)
            name = os.path.basename(asset_location) or "asset"
        else:
            vertices, edges = street_wireframe()
            name = "street"
    except AssetLoadError as exc:
        print(f"[Scene] {exc}; continuing without it")
        return scene

    scene.add(
        SceneObject(
            name=name,
            vertices=vertices,
            edges=edges,
            scale=scale,
            position=position,
            rotation_deg=rotation_deg,
        )
    )
    print(f"[Scene] loaded '{name}' ({len(vertices)} vertices, {len(edges)} edges)")
    return scene
