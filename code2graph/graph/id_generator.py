"""
Sequential node and edge ids, owned by one graph builder.
"""


class IdGenerator:
    """Monotonic ``node_N`` / ``edge_N`` counters."""

    def __init__(self):
        self.node_counter = 0
        self.edge_counter = 0

    def reset(self):
        self.node_counter = 0
        self.edge_counter = 0

    def next_node_id(self) -> str:
        self.node_counter += 1
        return f"node_{self.node_counter}"

    def next_edge_id(self) -> str:
        self.edge_counter += 1
        return f"edge_{self.edge_counter}"
