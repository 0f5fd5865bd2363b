from game.tasks.corsi import CorsiStrategy
from game.tasks.digit_span import DigitSpanStrategy
from game.tasks.nback import NBackStrategy

__all__ = ["CorsiStrategy", "DigitSpanStrategy", "NBackStrategy"]
