"""
The `constants` module defines the physical constants used by the estimation engine.
"""

from jax.numpy import pi as PI

# Mathematical Constants
"""
Constant to convert degrees to radians. Equal to 2pi/360. Units: *rad/deg*
"""
DEG2RAD = 2.0 * PI / 360.0

"""
Constant to convert radians to degrees. Equal to 360/2pi. Units: *deg/rad*
"""
RAD2DEG = 360.0 / (PI * 2.0)

# Time Constants

"""
Offset between Julian Date and Modified Julian Date. Units: *days*
"""
JD_MJD_OFFSET = 2400000.5

"""
Number of SI seconds in a (non leap-second) day. Units: *s*
"""
SECONDS_PER_DAY = 86400.0

# Earth Constants
"""
Earth's equatorial radius. [m]

References:

1. GGM05s Gravity Model
"""
R_EARTH = 6.378136300e6  # [m] GGM05s Value

"""
Earth's Gravitational constant [m^3/s^2]

References:

1. O. Montenbruck, and E. Gill, *Satellite Orbits: Models, Methods and
Applications*, 2012.
"""
GM_EARTH = 3.986004415e14  # [m^3/s^2] GGM05s Value

"""
Earth's first zonal harmonic. [dimensionless]

References:

1. GGM05s Gravity Model.
"""
J2_EARTH = 0.0010826358191967  # [] GGM05s value

# Atmosphere Constants
"""
Reference density of the exponential atmosphere at 400 km altitude. [kg/m^3]

References:

1. D. Vallado, *Fundamentals of Astrodynamics and Applications (4th Ed.)*,
   Table 8-4, 2010
"""
RHO_400KM = 3.725e-12

"""
Scale height of the exponential atmosphere between 400 and 450 km. [m]

References:

1. D. Vallado, *Fundamentals of Astrodynamics and Applications (4th Ed.)*,
   Table 8-4, 2010
"""
SCALE_HEIGHT_400KM = 58.515e3
