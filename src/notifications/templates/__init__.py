"""Template registry — maps queue message types to template classes.

Each template knows how to render email content from a notification
message's book and subscriber snapshot.
"""

from notifications.templates.new_book import NewBookTemplate

TEMPLATE_REGISTRY: dict[str, type] = {
    NewBookTemplate.message_type: NewBookTemplate,
}


def get_template(message_type: str):
    """Look up a template class by message type string."""
    template_cls = TEMPLATE_REGISTRY.get(message_type)
    if template_cls is None:
        raise ValueError(f"No template registered for message type: {message_type}")
    return template_cls
