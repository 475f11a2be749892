"""Experiment harness: scenarios and the command-line runner."""
