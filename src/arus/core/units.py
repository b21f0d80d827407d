"""
Conversions between metres and geographic degrees.

Series expansions of the WGS84 arc lengths (Snyder, 1987), accurate to
better than a metre, used to turn velocities in m/s into position rates in
deg/s for tracers stored in longitude/latitude.
"""

import numpy as np
from typing import Union

Number = Union[float, np.ndarray]


def meters_per_deg_lat(latitude: Number) -> Number:
    """Meridional arc length [m] of one degree of latitude at ``latitude``."""
    lat_rad = np.deg2rad(latitude)
    return (
        111_132.954
        - 559.822 * np.cos(2.0 * lat_rad)
        + 1.175 * np.cos(4.0 * lat_rad)
        - 0.0023 * np.cos(6.0 * lat_rad)
    )


def meters_per_deg_lon(latitude: Number) -> Number:
    """Zonal arc length [m] of one degree of longitude at ``latitude``."""
    lat_rad = np.deg2rad(latitude)
    return (
        111_412.84 * np.cos(lat_rad)
        - 93.5 * np.cos(3.0 * lat_rad)
        + 0.118 * np.cos(5.0 * lat_rad)
    )


def deg_lat_per_meter(latitude: Number) -> Number:
    """Degrees of latitude per metre of northward displacement."""
    return 1.0 / meters_per_deg_lat(latitude)


def deg_lon_per_meter(latitude: Number) -> Number:
    """
    Degrees of longitude per metre of eastward displacement.

    Latitudes are clipped to ±89.9° to keep the value finite at the poles.
    """
    latitude = np.clip(latitude, -89.9, 89.9)
    return 1.0 / meters_per_deg_lon(latitude)


def m2geo(
    meters: Number,
    latitude: Number,
    is_latitude: bool
) -> Number:
    """Convert a distance (or speed) in metres to degrees at ``latitude``."""
    if is_latitude:
        return meters * deg_lat_per_meter(latitude)
    return meters * deg_lon_per_meter(latitude)
