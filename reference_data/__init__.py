"""
Reference data for trip simulation

This package contains:
- drill_pipe: API 5DP drill pipe OD / weight / ID table
- trip_input.json: Sample well, fluids and trip configuration
"""
