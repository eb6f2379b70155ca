"""New book template — tells a subscriber a title in one of their categories arrived."""

from html import escape

from notifications.notification.message import NEW_BOOK_NOTIFICATION


class NewBookTemplate:
    message_type = NEW_BOOK_NOTIFICATION

    @staticmethod
    def render(context: dict) -> dict:
        name = context.get("subscriber_name") or "there"
        title = context.get("title", "a new title")
        author = context.get("author", "an unknown author")
        category = context.get("category", "")
        price = context.get("price")
        description = context.get("description") or ""
        book_url = context.get("book_url")

        price_line = f"Price: ${price:.2f}\n" if isinstance(price, (int, float)) else ""
        link_line = f"See it here: {book_url}\n" if book_url else ""

        body = (
            f"Hi {name},\n\n"
            f"A new book just arrived in {category}:\n\n"
            f"{title} by {author}\n"
            f"{price_line}"
            f"{link_line}"
        )
        if description:
            body += f"\n{description}\n"
        body += "\nYou are receiving this because you subscribed to new-title notifications.\n"

        html_parts = [
            f"<p>Hi {escape(name)},</p>",
            f"<p>A new book just arrived in <strong>{escape(category)}</strong>:</p>",
            f"<h2>{escape(title)}</h2>",
            f"<p>by {escape(author)}</p>",
        ]
        if price_line:
            html_parts.append(f"<p>{escape(price_line.strip())}</p>")
        if description:
            html_parts.append(f"<p>{escape(description)}</p>")
        if book_url:
            html_parts.append(f'<p><a href="{escape(book_url, quote=True)}">View the book</a></p>')

        return {
            "subject": f"New in {category}: {title} by {author}",
            "body": body,
            "html_body": "\n".join(html_parts),
        }
