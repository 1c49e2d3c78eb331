"""Game and round documents."""
import json
from typing import Optional

from pydantic import Field

from .base import DocumentModel
from .enums import ACTION_TEXT, GameStatus, GameType, RpsAction


class Participant(DocumentModel):
    """Identity and display name, as embedded in game documents."""
    identity: str
    name: str


class Applicant(Participant):
    """A participant who joined a game; fallen applicants are eliminated."""
    fallen: bool = False


class RoundEntry(DocumentModel):
    """One participant's submission for a round."""
    user: Participant
    action_json: str

    @classmethod
    def build(cls, user: Participant, action: RpsAction) -> "RoundEntry":
        payload = {"action": action.value, "actionText": ACTION_TEXT[action]}
        return cls(user=user, action_json=json.dumps(payload, ensure_ascii=False))

    @property
    def action(self) -> RpsAction:
        return RpsAction(json.loads(self.action_json)["action"])

    @property
    def action_text(self) -> str:
        return ACTION_TEXT[self.action]


class Round(DocumentModel):
    """One simultaneous-choice cycle."""
    round: int
    created_at: int
    # identity -> submission, in submission order
    round_detail: dict[str, RoundEntry] = Field(default_factory=dict)


class Game(DocumentModel):
    """Document stored at rooms/{roomId}/gameList/{idx}."""
    game_id: str
    type: GameType = GameType.PAPER_SCISSORS_STONE_SHOOT
    created_at: int
    status: GameStatus = GameStatus.WAITING
    apply_user_list: list[Applicant] = Field(default_factory=list)
    winner: Optional[Participant] = None
    round: int = 0
    round_list: list[Round] = Field(default_factory=list)
    host: Participant

    def find_applicant(self, identity: str) -> Optional[Applicant]:
        for applicant in self.apply_user_list:
            if applicant.identity == identity:
                return applicant
        return None

    def survivors(self) -> list[Applicant]:
        """Applicants not yet eliminated."""
        return [a for a in self.apply_user_list if not a.fallen]

    def current_round(self) -> Optional[Round]:
        for entry in self.round_list:
            if entry.round == self.round:
                return entry
        return None

    def is_active(self) -> bool:
        return self.status != GameStatus.END
