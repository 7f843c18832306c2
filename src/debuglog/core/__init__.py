"""Domain models, ports and pure logic with no I/O dependencies."""
