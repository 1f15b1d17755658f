class TankstatsError(Exception):
    pass


class MissingReferenceError(TankstatsError):
    """ An edit or delete referenced a packet missing from processed history """

    def __init__(self, packet_id: str):
        self.packet_id = packet_id
        super().__init__(f"referenced packet not found: {packet_id}")
