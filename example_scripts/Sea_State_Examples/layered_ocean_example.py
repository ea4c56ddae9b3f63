# -*- coding: utf-8 -*-
"""
Layered ocean surface

Builds the default four-layer ocean, advances it over one loop period and
shows the height and foam grids, the height at a probe point over time, and
a 3D view of the displaced surface mesh.
"""

import logging
import os

import matplotlib.pyplot as plt
import numpy as np
import pyvista as pv
from tqdm import tqdm

from ocean_utilities.config import SimulationConfig
from ocean_utilities.evolution import TimeState
from ocean_utilities.ocean import OceanSurface

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

#######################################################################################################################
# Input Parameters
#######################################################################################################################

texture_size = 128
seed = 7
repeat_time = 20  # seconds, the surface loops with this period
dt = 0.1
choppiness = (1.2, 1.2)
probe_texel = (40, 90)  # (row, col) of the height probe

output_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'output')
show_3d = True

#######################################################################################################################
# End Input Parameters
#######################################################################################################################

os.makedirs(output_path, exist_ok=True)

config = SimulationConfig(texture_size=texture_size, seed=seed, repeat_time=repeat_time, choppiness=choppiness)
config.save_json(os.path.join(output_path, 'layered_ocean.json'))

ocean = OceanSurface(config)

time_stamps = np.arange(0, repeat_time + dt, dt)
probe = np.zeros(len(time_stamps))
for idx, t in enumerate(tqdm(time_stamps)):
    state = TimeState(sim_time=t, delta_time=dt, tick=idx)
    composite = ocean.step(state)
    probe[idx] = composite.height[probe_texel]

print(f"Probe height at t=0: {probe[0]:.4f} m, at t={time_stamps[-1]:.1f}: {probe[-1]:.4f} m")

fig, axes = plt.subplots(1, 3, figsize=(16, 5))
im = axes[0].imshow(composite.height, cmap='ocean', origin='lower')
axes[0].set_title('Composite height (m)')
plt.colorbar(im, ax=axes[0])

im = axes[1].imshow(composite.foam, cmap='gray', origin='lower', vmin=0, vmax=1)
axes[1].set_title('Foam')
plt.colorbar(im, ax=axes[1])

axes[2].plot(time_stamps, probe)
axes[2].set_xlabel('Time (s)')
axes[2].set_ylabel('Height (m)')
axes[2].set_title(f'Probe at texel {probe_texel}')
axes[2].grid(True)

plt.tight_layout()
plt.savefig(os.path.join(output_path, 'layered_ocean.png'))
plt.show()

mesh = ocean.generate_mesh()
ocean.save_mesh(os.path.join(output_path, 'layered_ocean.vtp'))
if show_3d:
    plotter = pv.Plotter()
    plotter.add_mesh(mesh, scalars='Height', cmap='ocean')
    plotter.show()

ocean.close()
