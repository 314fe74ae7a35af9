#!/usr/bin/env python
"""searchlight_mean.py - Smooth voxel values over each voxel's searchlight."""

import numpy as np

from idm_meta import create_meta_from_mask

# Two ROIs inside a small volume
mask = np.zeros((20, 20, 10), dtype=np.int16)
mask[2:9, 3:15, 1:8] = 1
mask[11:18, 5:12, 2:9] = 2

meta = create_meta_from_mask(mask, radius=2)
print(f"Voxels: {meta.n_voxels}, ROIs: {meta.roi_ids.tolist()}")
print(f"Neighbour search strategy: {meta.strategy}")

# One value per column, e.g. a voxelwise statistic
rng = np.random.default_rng(0)
values = rng.normal(size=meta.n_voxels)

# Mean over each voxel and its neighbours
smoothed = np.empty_like(values)
for col in range(meta.n_voxels):
    searchlight = np.append(meta.neighbors_of(col), col)
    smoothed[col] = values[searchlight].mean()

print(f"Raw std: {values.std():.3f}, searchlight-mean std: {smoothed.std():.3f}")

# Per-ROI summaries
for label, columns in meta.iter_rois():
    print(f"  ROI {label}: {len(columns)} voxels, mean {smoothed[columns].mean():.3f}")

# Back into a volume for display, NaN outside the mask
volume = meta.to_volume(smoothed)
print(f"Volume shape: {volume.shape}, NaN voxels: {np.isnan(volume).sum()}")
