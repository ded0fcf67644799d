"""
Solar position using the Michalsky (1988) algorithm.

Reference:
    Michalsky, J. J. (1988). The Astronomical Almanac's algorithm for
    approximate solar position (1950-2050). Solar Energy 40(3), 227-235.
"""

import numpy as np

from dynsim.modules import SteadyStateModule

# Julian date of 1949-01-01 00:00 UT minus 1 day, and of J2000.0
JD_1949 = 2432916.5
JD_J2000 = 2451545.0

# Elevation below which refraction is held constant [degrees]
REFRACTION_LIMIT = -0.56


def julian_offset(year, day_of_year, universal_hour):
    """
    Days since the J2000.0 epoch.

    Parameters:
    -----------
    year : int or float
        Calendar year, 1950 to 2050
    day_of_year : int or float
        Day of year, 1 = January 1
    universal_hour : float
        Hour of the day in universal time
    """
    delta = year - 1949
    leap = np.floor(delta / 4)
    jd = JD_1949 + delta * 365 + leap + day_of_year + universal_hour / 24
    return jd - JD_J2000


def atmospheric_refraction(elevation):
    """Refraction correction [degrees] for an elevation in degrees."""
    if elevation <= REFRACTION_LIMIT:
        return 0.56
    return (
        3.51561
        * (0.1594 + 0.0196 * elevation + 0.00002 * elevation**2)
        / (1 + 0.505 * elevation + 0.0845 * elevation**2)
    )


def solar_zenith_angle(lat, longitude, time, time_zone_offset, year):
    """
    Solar zenith angle, corrected for refraction.

    Parameters:
    -----------
    lat : float
        Latitude [degrees north]
    longitude : float
        Longitude [degrees east]
    time : float
        Local standard time as a fractional day of year; the integer
        part is the day (1 = January 1), the fraction the time of day
    time_zone_offset : float
        Offset of local standard time from UTC [hours]
    year : float
        Calendar year

    Returns:
    --------
    zenith : float
        Solar zenith angle [degrees]
    """
    day_of_year = np.floor(time)
    universal_hour = (time - day_of_year) * 24 - time_zone_offset
    n = julian_offset(year, day_of_year, universal_hour)

    # Ecliptic coordinates [degrees]
    mean_longitude = np.mod(280.460 + 0.9856474 * n, 360)
    mean_anomaly = np.radians(np.mod(357.528 + 0.9856003 * n, 360))
    ecliptic_longitude = np.radians(
        np.mod(
            mean_longitude
            + 1.915 * np.sin(mean_anomaly)
            + 0.020 * np.sin(2 * mean_anomaly),
            360,
        )
    )
    obliquity = np.radians(23.439 - 0.0000004 * n)

    # Celestial coordinates
    right_ascension = np.mod(
        np.arctan2(
            np.cos(obliquity) * np.sin(ecliptic_longitude),
            np.cos(ecliptic_longitude),
        ),
        2 * np.pi,
    )
    declination = np.arcsin(np.sin(obliquity) * np.sin(ecliptic_longitude))

    # Local coordinates
    gmst = np.mod(6.697375 + 0.0657098242 * n + universal_hour, 24)
    lmst = np.mod(gmst + longitude / 15, 24)
    hour_angle = np.radians(lmst * 15) - right_ascension
    hour_angle = np.mod(hour_angle + np.pi, 2 * np.pi) - np.pi

    phi = np.radians(lat)
    elevation = np.degrees(
        np.arcsin(
            np.sin(declination) * np.sin(phi)
            + np.cos(declination) * np.cos(phi) * np.cos(hour_angle)
        )
    )
    elevation = min(elevation + atmospheric_refraction(elevation), 90.0)

    return float(90.0 - elevation)


class SolarPositionMichalsky(SteadyStateModule):
    """Solar zenith angle and its cosine at the current time."""

    name = "solar_position_michalsky"
    inputs = ("lat", "longitude", "time", "time_zone_offset", "year")
    outputs = ("cosine_zenith_angle", "solar_zenith_angle")

    def compute(self, q):
        zenith = solar_zenith_angle(
            q["lat"], q["longitude"], q["time"], q["time_zone_offset"], q["year"]
        )
        return {
            "cosine_zenith_angle": float(np.cos(np.radians(zenith))),
            "solar_zenith_angle": zenith,
        }
