# sevengcity/ui/__init__.py
"""
UI Package - PyQt6 Live Dashboard

Read-only consumer of the metrics snapshot. Nothing in the simulation
core imports this package, so headless runs never load Qt.

Dependencies
------------
- PyQt6 : GUI framework
- pyqtgraph : High-performance plotting
- qtawesome : Window icon
"""
