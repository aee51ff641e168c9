"""Domain events, audience rules and the fan-out pipeline."""
