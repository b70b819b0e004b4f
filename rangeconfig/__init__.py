"""Range Config - instance configuration server and network configuration clients."""
