import random
from rps_vision.orchestrator.contracts import GameOutcome, GestureLabel, OutcomeResult

# winner -> the gesture it beats
BEATS: dict[GestureLabel, GestureLabel] = {
    GestureLabel.ROCK: GestureLabel.SCISSORS,
    GestureLabel.PAPER: GestureLabel.ROCK,
    GestureLabel.SCISSORS: GestureLabel.PAPER,
}


def resolve(player: GestureLabel, counter: GestureLabel) -> GameOutcome:
    if player == counter:
        return GameOutcome(result=OutcomeResult.DRAW, message="Draw!")
    if BEATS[player] == counter:
        return GameOutcome(result=OutcomeResult.WIN, message=f"You Win! AI chose {counter.value}")
    return GameOutcome(result=OutcomeResult.LOSE, message=f"You Lose! AI chose {counter.value}")


def random_counter_move(rng: random.Random | None = None) -> GestureLabel:
    return (rng or random).choice(list(GestureLabel))
