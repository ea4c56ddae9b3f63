# -*- coding: utf-8 -*-
"""
Floating box on a wind sea

Drops a box-shaped hull onto a Beaufort 4 sea, lets it settle on its four
corner floaters, then damages it until it sinks. Heave, pitch and roll are
plotted over time.
"""

import logging
import os

import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm

from ocean_utilities.buoyancy import BuoyantBody, MovementMode
from ocean_utilities.config import OceanPresets
from ocean_utilities.rigid_body import RigidBody
from ocean_utilities.simulation import OceanSimulation

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

#######################################################################################################################
# Input Parameters
#######################################################################################################################

beaufort_number = 4
texture_size = 64  # FFT grid resolution
seed = 42
tick_rate = 50  # physics ticks per second
total_time = 30  # seconds
damage_time = 20  # seconds, buoyancy is removed at this time

hull_mass = 500  # kg
hull_size = (4.0, 1.0, 8.0)  # full extents x, y, z in meters
buoyancy_strength = 1000  # N per m^2 of floater area per meter of depth
damping_strength = 500
movement_mode = MovementMode.ALONG_SURFACE_NORMAL

output_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'output')
save_mesh = True

#######################################################################################################################
# End Input Parameters
#######################################################################################################################

os.makedirs(output_path, exist_ok=True)

config = OceanPresets.from_beaufort(beaufort_number, texture_size=texture_size, seed=seed, tick_rate=tick_rate)

hull = RigidBody.box(hull_mass, hull_size, pos=(20.0, 2.0, 40.0))
half_extents = [s / 2 for s in hull_size]

num_ticks = int(total_time * tick_rate)
damage_tick = int(damage_time * tick_rate)

time_stamps = np.zeros(num_ticks)
heave = np.zeros(num_ticks)
water_level = np.zeros(num_ticks)
pitch_roll = np.zeros((num_ticks, 2))

with OceanSimulation(config) as sim:
    body = sim.add_body(BuoyantBody.box_floaters(hull, half_extents,
                                                 buoyancy_strength=buoyancy_strength,
                                                 damping_strength=damping_strength,
                                                 movement_mode=movement_mode,
                                                 name='hull'))

    for idx in tqdm(range(num_ticks)):
        if idx == damage_tick:
            body.reduce_buoyancy(body.buoyancy_strength)
        state = sim.step()

        time_stamps[idx] = state.sim_time
        heave[idx] = hull.pos[1]
        water_level[idx] = sim.height_cache.get_height(hull.pos[0], hull.pos[2])
        yaw, pitch, roll = hull.euler_deg
        pitch_roll[idx] = [pitch, roll]

        if save_mesh and idx == damage_tick - 1:
            sim.surface.save_mesh(os.path.join(output_path, 'ocean_surface.vtp'))

    print(f"Height cache published {sim.height_cache.publish_count} snapshots "
          f"({sim.height_cache.failure_count} failed readbacks)")

fig, (ax1, ax2) = plt.subplots(2, 1, sharex=True, figsize=(10, 7))
ax1.plot(time_stamps, heave, label='hull center')
ax1.plot(time_stamps, water_level, label='water level', alpha=0.7)
ax1.axvline(damage_time, color='k', linestyle='--', label='buoyancy lost')
ax1.set_ylabel('Height (m)')
ax1.legend()
ax1.grid(True)

ax2.plot(time_stamps, pitch_roll[:, 0], label='pitch')
ax2.plot(time_stamps, pitch_roll[:, 1], label='roll')
ax2.set_xlabel('Time (s)')
ax2.set_ylabel('Angle (deg)')
ax2.legend()
ax2.grid(True)

plt.suptitle(f'Box hull on Beaufort {beaufort_number} sea')
plt.tight_layout()
plt.savefig(os.path.join(output_path, 'floating_box.png'))
plt.show()
