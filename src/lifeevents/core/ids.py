from typing import NewType

EventId = NewType('EventId', int)
PlayerId = NewType('PlayerId', str)
