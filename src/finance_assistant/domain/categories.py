from enum import Enum

from rapidfuzz import fuzz, process

OTHER_CATEGORY = "other"

# key -> (vi label, en label)
EXPENSE_CATEGORIES: dict[str, tuple[str, str]] = {
    "food": ("Ăn uống", "Food"),
    "transport": ("Di chuyển", "Transport"),
    "shopping": ("Mua sắm", "Shopping"),
    "entertainment": ("Giải trí", "Entertainment"),
    "bills": ("Hóa đơn", "Bills"),
    "health": ("Sức khỏe", "Health"),
    "education": ("Học tập", "Education"),
    "transfer": ("Chuyển khoản", "Transfer"),
    "other": ("Khác", "Other"),
}

INCOME_CATEGORIES: dict[str, tuple[str, str]] = {
    "salary": ("Lương", "Salary"),
    "freelance": ("Freelance", "Freelance"),
    "investment": ("Đầu tư", "Investment"),
    "bonus": ("Thưởng", "Bonus"),
    "gift": ("Quà tặng", "Gift"),
    "refund": ("Hoàn tiền", "Refund"),
    "other": ("Khác", "Other"),
}

_CATEGORY_SETS = {
    "expense": EXPENSE_CATEGORIES,
    "income": INCOME_CATEGORIES,
}


def _type_key(transaction_type: str | Enum) -> str:
    value = transaction_type.value if isinstance(transaction_type, Enum) else transaction_type
    key = str(value).lower()
    if key not in _CATEGORY_SETS:
        raise ValueError(f"Unknown transaction type: {transaction_type!r}")
    return key


def categories_for(transaction_type: str | Enum) -> list[str]:
    return list(_CATEGORY_SETS[_type_key(transaction_type)])


def is_valid_category(transaction_type: str | Enum, category: str) -> bool:
    return category in _CATEGORY_SETS[_type_key(transaction_type)]


def category_label(transaction_type: str | Enum, category: str, locale: str = "vi") -> str:
    labels = _CATEGORY_SETS[_type_key(transaction_type)].get(category)
    if labels is None:
        return category
    vi_label, en_label = labels
    return en_label if locale == "en" else vi_label


def category_labels(transaction_type: str | Enum, locale: str = "vi") -> dict[str, str]:
    return {
        key: category_label(transaction_type, key, locale)
        for key in categories_for(transaction_type)
    }


def normalize_category(
    transaction_type: str | Enum,
    raw: str | None,
    threshold: float = 80.0,
) -> str:
    """
    Map a free-form category name onto the closed category set of a type.

    Keys and labels in either language match exactly (case-insensitive); anything
    else goes through fuzzy matching and falls back to ``other``.
    """
    if not raw or not raw.strip():
        return OTHER_CATEGORY

    categories = _CATEGORY_SETS[_type_key(transaction_type)]
    needle = raw.strip().lower()

    choices: dict[str, str] = {}
    for key, (vi_label, en_label) in categories.items():
        choices[key] = key
        choices[vi_label.lower()] = key
        choices[en_label.lower()] = key

    if needle in choices:
        return choices[needle]

    result = process.extractOne(needle, choices.keys(), scorer=fuzz.WRatio)
    if result:
        match, score, _ = result
        if score >= threshold:
            return choices[match]
    return OTHER_CATEGORY
