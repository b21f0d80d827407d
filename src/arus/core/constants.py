"""
Shared names and values for tracer state and background fields.

Column layout of the base tracer state:

    x, y, z          position (m, or deg lon/lat + m in geographic mode)
    u, v, w          velocity [m/s]
    dVelX..dVelZ     velocity due to diffusion [m/s]
    mLen             distance travelled with the current diffusion velocity [m]
    age              time since release [s]
"""

# Background variable names
VAR_U = "u"
VAR_V = "v"
VAR_W = "w"
VAR_DIFFUSIVITY = "diffusivity"
VAR_VERTICAL_DIFFUSIVITY = "verticalDiffusivity"
VAR_LAND_MASK = "landMask"
VAR_LAND_INT_MASK = "landIntMask"

FIELD_VARIABLES = (
    VAR_U,
    VAR_V,
    VAR_W,
    VAR_DIFFUSIVITY,
    VAR_VERTICAL_DIFFUSIVITY,
    VAR_LAND_MASK,
    VAR_LAND_INT_MASK,
)

MASK_VARIABLES = (VAR_LAND_MASK, VAR_LAND_INT_MASK)

# Mask values
MASK_WATER = 1
MASK_LAND = 2

# State columns
POSITION_VARS = ("x", "y", "z")
VELOCITY_VARS = (VAR_U, VAR_V, VAR_W)
DIFFUSION_VARS = ("dVelX", "dVelY", "dVelZ")
MIXING_LENGTH_VAR = "mLen"
AGE_VAR = "age"

BASE_VARS = (
    POSITION_VARS
    + VELOCITY_VARS
    + DIFFUSION_VARS
    + (MIXING_LENGTH_VAR, AGE_VAR)
)

PAPER_VARS = ("radius", "condition", "concentration")

PRECISIONS = {
    "single": "float32",
    "double": "float64",
}
