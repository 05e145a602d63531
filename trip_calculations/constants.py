"""
Hydraulics and simulation constants shared by the calculation modules.
"""

# Hydrostatic gradient factor: kPa per metre of TVD per kg/m^3 of density
G_KPA_PER_M_PER_KGM3 = 0.00981

# Floating point tolerance for depth comparisons (m)
EPS = 1e-9

# Volumes below this are treated as nothing (m^3)
VOLUME_EPS = 1e-12

# Density of air at surface conditions (kg/m^3)
RHO_AIR_KGM3 = 1.2

# Anything lighter than this is drawn and integrated as air
AIR_DENSITY_SENTINEL_KGM3 = 10.0

# Tolerance for "same fluid" density comparison when merging layers (kg/m^3)
DENSITY_MERGE_TOL_KGM3 = 1e-6

# Pressure margin before a closed float is allowed to open (kPa)
FLOAT_TOLERANCE_KPA = 5.0

# Parcel size used for U-tube equalization (10 L)
PULSE_PARCEL_M3 = 0.01
MAX_INITIAL_PULSE_ITERATIONS = 10000
MAX_STEP_EQUALIZATION_ITERATIONS = 1000

# Internal sub-step sizes (m)
FINE_STEP_M = 1.0
COARSE_STEP_M = 5.0
COARSE_STEP_MARGIN_KPA = 50.0

# Fann 35 viscometer
FANN35_DIAL_TO_PA = 0.478802
FANN35_600RPM_SHEAR_RATE = 1022.0
FANN35_300RPM_SHEAR_RATE = 511.0
