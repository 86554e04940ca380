"""
Library modules used by carindex. The module `carindex.lib.car` contains the parser for CAR
containers; all other modules provide the building blocks it depends on.
"""
