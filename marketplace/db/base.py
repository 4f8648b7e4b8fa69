# Import all the models, so that SQLModel.metadata has them before create_all
from marketplace.models.user_model import User  # noqa: F401
from marketplace.models.ad_model import Ad  # noqa: F401
from marketplace.models.follow_model import Follow  # noqa: F401
from marketplace.models.review_model import AdReview  # noqa: F401
from marketplace.models.reaction_model import ReviewReaction, ReactionType  # noqa: F401
