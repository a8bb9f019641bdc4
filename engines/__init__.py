"""
Engines package
Adaptery silników gier do wspólnego interfejsu AbstractGameEngine
"""
