"""Seed canonical reference data and a demo data set."""
from datetime import date
from typing import Dict

from sqlalchemy.orm import Session

from app.models import Ingredient, IngredientAlias, Log, LogIngredient, LogSymptom, Symptom, User


# Canonical ingredient -> aliases that resolve to it deterministically
CANONICAL_INGREDIENTS: Dict[str, list] = {
    "Tomatoes": ["tomato sauce", "cherry tomato", "ketchup", "marinara", "passata"],
    "Dairy": ["milk", "cheese", "butter", "cream", "yogurt", "yoghurt", "ice cream", "mozzarella", "cheddar", "parmesan"],
    "Gluten": ["wheat", "bread", "pasta", "flour", "barley", "rye", "noodles", "couscous"],
    "Eggs": ["omelette", "omelet", "mayonnaise"],
    "Nuts": ["peanut", "almond", "walnut", "cashew", "hazelnut", "pistachio", "pecan"],
    "Soy": ["soya", "tofu", "soy sauce", "edamame", "soy milk", "tempeh"],
    "Shellfish": ["shrimp", "prawn", "crab", "lobster", "mussel", "oyster", "scallop"],
    "Chocolate": ["cocoa", "cacao"],
    "Caffeine": ["coffee", "espresso", "tea", "cola", "energy drink"],
    "Onions": ["shallot", "leek", "spring onion", "scallion"],
    "Garlic": ["garlic powder", "aioli"],
    "Spicy Food": ["chili", "chilli", "curry", "hot sauce", "jalapeno", "sriracha", "cayenne"],
}

CANONICAL_SYMPTOMS = [
    "Stomach Pain",
    "Bloating",
    "Nausea",
    "Headache",
    "Rash",
    "Fatigue",
    "Diarrhea",
    "Heartburn",
    "Joint Pain",
    "Brain Fog",
]

# (date, notes, ingredients, {symptom: severity}); Tomatoes in 5 of 10 logs with high severity
DEMO_LOGS = [
    (date(2026, 1, 2), "Pizza lunch", ["Tomatoes", "Dairy", "Gluten"], {"Stomach Pain": 4, "Bloating": 4}),
    (date(2026, 1, 3), "Scrambled eggs breakfast", ["Eggs", "Dairy"], {}),
    (date(2026, 1, 4), "Pasta with tomato sauce", ["Tomatoes", "Gluten"], {"Stomach Pain": 5, "Nausea": 4}),
    (date(2026, 1, 5), "Coffee and nuts", ["Caffeine", "Nuts"], {"Headache": 1}),
    (date(2026, 1, 6), "Salad with tomatoes", ["Tomatoes", "Onions"], {"Stomach Pain": 4}),
    (date(2026, 1, 7), "Ice cream", ["Dairy", "Chocolate"], {"Bloating": 2}),
    (date(2026, 1, 8), "Bread and eggs", ["Gluten", "Eggs"], {}),
    (date(2026, 1, 9), "Spicy curry with tomatoes", ["Tomatoes", "Spicy Food", "Garlic"], {"Stomach Pain": 5, "Nausea": 4}),
    (date(2026, 1, 10), "Chocolate bar", ["Chocolate"], {"Headache": 2}),
    (date(2026, 1, 11), "Tomato soup", ["Tomatoes", "Garlic", "Onions"], {"Stomach Pain": 4}),
]

DEMO_NOTES = [notes for _day, notes, _ingredients, _symptoms in DEMO_LOGS]


def seed_reference_data(db: Session) -> Dict[str, int]:
    """
    Insert canonical ingredients, aliases and symptoms that are missing.

    Safe to run repeatedly. Returns counts of rows created.
    """
    created = {"ingredients": 0, "aliases": 0, "symptoms": 0}

    for name, aliases in CANONICAL_INGREDIENTS.items():
        normalized = Ingredient.normalize_name(name)
        ingredient = db.query(Ingredient).filter(Ingredient.normalized_name == normalized).first()
        if not ingredient:
            ingredient = Ingredient(name=name, normalized_name=normalized)
            db.add(ingredient)
            db.flush()
            created["ingredients"] += 1

        for alias in aliases:
            normalized_alias = Ingredient.normalize_name(alias)
            exists = (
                db.query(IngredientAlias)
                .filter(IngredientAlias.normalized_alias == normalized_alias)
                .first()
            )
            if not exists:
                db.add(
                    IngredientAlias(
                        ingredient_id=ingredient.id,
                        alias=alias,
                        normalized_alias=normalized_alias,
                    )
                )
                created["aliases"] += 1

    existing_symptoms = {name for (name,) in db.query(Symptom.name).all()}
    for name in CANONICAL_SYMPTOMS:
        if name not in existing_symptoms:
            db.add(Symptom(name=name))
            created["symptoms"] += 1

    db.commit()
    return created


def seed_demo_logs(db: Session, user: User) -> int:
    """
    Replace the user's demo logs with a 10-day data set where Tomatoes is the clear trigger.

    Analyse 2026-01-01..2026-01-12 to see it. Returns the number of logs created.
    """
    seed_reference_data(db)

    ingredients = {i.name: i for i in db.query(Ingredient).filter(Ingredient.name.in_(CANONICAL_INGREDIENTS)).all()}
    symptoms = {s.name: s for s in db.query(Symptom).filter(Symptom.name.in_(CANONICAL_SYMPTOMS)).all()}

    for log in db.query(Log).filter(Log.user_id == user.id, Log.notes.in_(DEMO_NOTES)).all():
        db.delete(log)
    db.flush()

    for day, notes, ingredient_names, symptom_severities in DEMO_LOGS:
        log = Log(user_id=user.id, log_date=day, notes=notes)
        for name in ingredient_names:
            log.log_ingredients.append(
                LogIngredient(ingredient=ingredients[name], raw_text=name, match_confidence=1)
            )
        for name, severity in symptom_severities.items():
            log.log_symptoms.append(LogSymptom(symptom=symptoms[name], severity=severity))
        db.add(log)

    db.commit()
    return len(DEMO_LOGS)
