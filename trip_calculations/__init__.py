"""
Calculation modules for trip simulation (pulling out / running in hole)

This package contains the numerical engine and its supporting models:
- calcs_tvd: Measured depth to true vertical depth sampling, heel detection
- calcs_geometry: Drill string / annulus sections and area-volume queries
- calcs_rheology: Mud catalogue entries and Fann 35 rheology
- calcs_layers: Fluid layers, column stacks and layer re-slicing
- calcs_hydrostatic: Hydrostatic pressure integration along TVD
- calcs_float: Float valve state machine
- calcs_trip: Incremental trip simulation engine
- calcs_optimizer: Kill mud / slug optimizer
- calcs_frozen: Frozen simulation inputs and staleness checks
- config: JSON input loading
"""
