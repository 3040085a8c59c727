#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
virtual_stick.py: fly forward with the virtual sticks (Copter Only)

Takes off, pushes the right stick forward for a few seconds, lets go
and lands. No mission planner is attached.
"""

import time

from stickpilot import CommandResult, ControlSession, StickAssignment, load_config

# Set up option parsing to get connection string
import argparse

parser = argparse.ArgumentParser(description="Fly forward with the virtual sticks.")
parser.add_argument("--connect", help="Vehicle connection target string.")
parser.add_argument("--config", help="YAML configuration file.")
parser.add_argument("--seconds", type=float, default=3.0, help="how long to push the stick")
args = parser.parse_args()


class NoPlanner(object):
    def _reject(self, *args):
        return CommandResult.failed("No mission planner attached")

    start_mission = pause_mission = resume_mission = stop_mission = _reject


config = load_config(args.config)
if args.connect:
    config.connection.connection_string = args.connect

print("Connecting to vehicle on: %s" % config.connection.connection_string)
with ControlSession.with_mavlink(NoPlanner(), config) as session:
    print(" Flight status: %s" % session.flight_status.get())
    print(" Readiness: %s" % session.check_readiness())

    session.takeoff()
    while not session.flight_status.get().is_flying:
        time.sleep(0.5)
    time.sleep(5)

    session.enable_virtual_stick()
    deadline = time.time() + args.seconds
    while time.time() < deadline:
        # Knob pushed halfway up
        session.on_gesture(StickAssignment.RIGHT, 0, -17.5)
        time.sleep(0.05)
    session.on_release(StickAssignment.RIGHT)
    session.disable_virtual_stick()

    session.land()
    while session.flight_status.get().is_flying:
        time.sleep(0.5)

    print("\nDebug log:")
    for line in session.logs.formatted():
        print(line)
