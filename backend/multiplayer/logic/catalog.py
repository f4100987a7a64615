"""
Static game content: card symbols, grocery items and sample trivia puzzles.

Symbols are high-contrast emoji chosen to be easy to tell apart on a
large-print card grid.
"""

from multiplayer.logic.enums import Difficulty, HintType

FRUIT_SYMBOLS: tuple[str, ...] = ("🍎", "🍊", "🍋", "🍇", "🍓", "🍌", "🍉", "🍒", "🥭", "🍑")
ANIMAL_SYMBOLS: tuple[str, ...] = ("🐶", "🐱", "🐦", "🐰", "🐻", "🦋", "🐢", "🐠", "🦁", "🐘")
OBJECT_SYMBOLS: tuple[str, ...] = ("⭐", "❤️", "🌙", "☀️", "🌸", "🏠", "🚗", "✈️", "⚽", "🎵")
ALL_SYMBOLS: tuple[str, ...] = FRUIT_SYMBOLS + ANIMAL_SYMBOLS + OBJECT_SYMBOLS

# difficulty -> (grid side, number of pairs)
DIFFICULTY_GRID: dict[Difficulty, tuple[int, int]] = {
    Difficulty.EASY: (2, 2),
    Difficulty.MEDIUM: (4, 8),
    Difficulty.HARD: (6, 18),
}


def symbols_for_difficulty(difficulty: Difficulty) -> tuple[str, ...]:
    """Easy and medium draw from fruits only; hard needs the combined set."""
    _, pairs = DIFFICULTY_GRID[difficulty]
    source = FRUIT_SYMBOLS if pairs <= len(FRUIT_SYMBOLS) else ALL_SYMBOLS
    return source[:pairs]


# (item_id, name, emoji, category)
GROCERY_ITEMS: tuple[tuple[str, str, str, str], ...] = (
    ("apple", "Apple", "🍎", "fruits"),
    ("banana", "Banana", "🍌", "fruits"),
    ("orange", "Orange", "🍊", "fruits"),
    ("grapes", "Grapes", "🍇", "fruits"),
    ("mango", "Mango", "🥭", "fruits"),
    ("watermelon", "Watermelon", "🍉", "fruits"),
    ("carrot", "Carrot", "🥕", "vegetables"),
    ("tomato", "Tomato", "🍅", "vegetables"),
    ("potato", "Potato", "🥔", "vegetables"),
    ("onion", "Onion", "🧅", "vegetables"),
    ("broccoli", "Broccoli", "🥦", "vegetables"),
    ("corn", "Corn", "🌽", "vegetables"),
    ("milk", "Milk", "🥛", "dairy"),
    ("cheese", "Cheese", "🧀", "dairy"),
    ("butter", "Butter", "🧈", "dairy"),
    ("egg", "Eggs", "🥚", "dairy"),
    ("bread", "Bread", "🍞", "bakery"),
    ("croissant", "Croissant", "🥐", "bakery"),
    ("cake", "Cake", "🍰", "bakery"),
    ("cookie", "Cookies", "🍪", "bakery"),
    ("chicken", "Chicken", "🍗", "meat"),
    ("fish", "Fish", "🐟", "meat"),
    ("shrimp", "Shrimp", "🦐", "meat"),
    ("coffee", "Coffee", "☕", "beverages"),
    ("tea", "Tea", "🍵", "beverages"),
    ("juice", "Juice", "🧃", "beverages"),
    ("water", "Water", "💧", "beverages"),
    ("rice", "Rice", "🍚", "grains"),
    ("honey", "Honey", "🍯", "other"),
    ("salt", "Salt", "🧂", "other"),
)

# (puzzle_id, category, image_asset, hint, hint_type, options, answer, audio_asset)
SAMPLE_PUZZLES: tuple[tuple[str, str, str, str, HintType, tuple[str, ...], str, str | None], ...] = (
    (
        "1",
        "Hollywood Musical",
        "assets/trivia/puzzle_rain.jpeg",
        "A man dances through puddles under a streetlamp.",
        HintType.AUDIO,
        ("Singin' in the Rain", "An American in Paris", "West Side Story", "Oklahoma!"),
        "Singin' in the Rain",
        "assets/audio/rain.mpeg",
    ),
    (
        "2",
        "Classic Romance",
        "assets/trivia/puzzle_casablanca.jpeg",
        "Of all the gin joints in all the towns in all the world...",
        HintType.DIALOGUE,
        ("Casablanca", "Roman Holiday", "Gone with the Wind", "Brief Encounter"),
        "Casablanca",
        None,
    ),
    (
        "3",
        "Family Adventure",
        "assets/trivia/puzzle_oz.jpeg",
        "Somewhere, over the rainbow, way up high.",
        HintType.LYRIC,
        ("The Wizard of Oz", "Mary Poppins", "The Sound of Music", "Peter Pan"),
        "The Wizard of Oz",
        "assets/audio/rainbow.mpeg",
    ),
    (
        "4",
        "Animated Fun",
        "assets/trivia/puzzle_jungle.jpeg",
        "Look for the bare necessities, the simple bare necessities.",
        HintType.LYRIC,
        ("The Jungle Book", "Dumbo", "Bambi", "Lady and the Tramp"),
        "The Jungle Book",
        "assets/audio/necessities.mpeg",
    ),
    (
        "5",
        "Epic Drama",
        "assets/trivia/puzzle_chariot.jpeg",
        "A chariot race in the Circus Maximus.",
        HintType.TEXT,
        ("Ben-Hur", "Spartacus", "Cleopatra", "The Ten Commandments"),
        "Ben-Hur",
        None,
    ),
)
