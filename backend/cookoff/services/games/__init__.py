"""Cook-off domain services: roster, rounds, phases, voting, scoring and timers.

Everything except the scheduler is pure: functions take the session
document and return a new one (or raise), so HTTP routes and socket
handlers only load, apply and store.
"""
