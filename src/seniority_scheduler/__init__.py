"""
Seniority-Based Shift Scheduling System

Generates monthly duty rosters with seniority-weighted fairness targets,
rest constraints and leave handling, and distributes secondary task
columns across the staff who are free on each day.
"""

__version__ = "1.0.0"
__author__ = "Shift Scheduler Team"
