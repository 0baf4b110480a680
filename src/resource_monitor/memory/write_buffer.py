class WriteBuffer:
    """
    A fixed-size byte buffer that collects whole records before they hit disk.

    Each trace source owns one; nothing is shared between sources.
    """

    def __init__(self, size: int):
        """
        Initializes the WriteBuffer.

        Args:
            size (int): The size of the buffer in bytes.
        """
        if size <= 0:
            raise ValueError("Buffer size must be positive")
        self.size = size
        self.buffer = bytearray(size)
        self.write_pos = 0

    def fits(self, data_len: int) -> bool:
        """
        Returns True if ``data_len`` bytes can be appended contiguously.
        """
        return self.size - self.write_pos >= data_len

    def put(self, data: bytes) -> bool:
        """
        Appends data to the buffer. Never splits ``data``.

        Args:
            data (bytes): The bytes to append.

        Returns:
            bool: True if the data was appended, False if it does not fit
                  in the remaining space.
        """
        data_len = len(data)
        if data_len > self.size:
            raise ValueError("Data size exceeds buffer capacity")

        if not self.fits(data_len):
            return False
        self.buffer[self.write_pos:self.write_pos + data_len] = data
        self.write_pos += data_len
        return True

    def drain(self) -> bytes:
        """
        Removes and returns everything written so far.

        Returns:
            bytes: The buffered data, empty if nothing was buffered.
        """
        data = bytes(self.buffer[:self.write_pos])
        self.write_pos = 0
        return data

    def __len__(self) -> int:
        """Returns the number of bytes currently in the buffer."""
        return self.write_pos

    @property
    def capacity(self) -> int:
        """Returns the total capacity of the buffer."""
        return self.size

    @property
    def free_space(self) -> int:
        """Returns the number of free bytes in the buffer."""
        return self.size - self.write_pos
