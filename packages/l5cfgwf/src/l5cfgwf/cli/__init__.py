# packages/l5cfgwf/src/l5cfgwf/cli/__init__.py
