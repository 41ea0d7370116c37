"""Drug-safety knowledge tables.

The tables are immutable data loaded once per process. Matchers accept a
``DrugKnowledgeBase`` argument so tests and deployments can swap the
tables without touching matching logic. ``DRUG_KNOWLEDGE_BASE_PATH`` may
point at a JSON file shaped like ``DrugKnowledgeBase.to_dict()``.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from carevault.config import DRUG_KNOWLEDGE_BASE_PATH

logger = logging.getLogger(__name__)

SEVERITIES = ("high", "moderate", "low")


@dataclass(frozen=True)
class InteractionRule:
    drugs: tuple[str, str]
    severity: str
    description: str

    def __post_init__(self) -> None:
        if len(self.drugs) != 2:
            raise ValueError(f"interaction rule needs exactly two drugs, got {self.drugs!r}")
        if self.severity not in SEVERITIES:
            raise ValueError(f"unknown interaction severity {self.severity!r}")


@dataclass(frozen=True)
class DrugKnowledgeBase:
    allergy_classes: Mapping[str, tuple[str, ...]]
    interactions: tuple[InteractionRule, ...]
    diabetes_drugs: tuple[str, ...] = field(default=())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DrugKnowledgeBase":
        classes = {
            str(key): tuple(str(drug) for drug in drugs)
            for key, drugs in (data.get("allergy_classes") or {}).items()
        }
        rules = tuple(
            InteractionRule(
                drugs=tuple(str(d) for d in row["drugs"]),
                severity=row["severity"],
                description=row.get("description", ""),
            )
            for row in data.get("interactions") or []
        )
        diabetes = tuple(str(d) for d in data.get("diabetes_drugs") or ())
        return cls(
            allergy_classes=MappingProxyType(classes),
            interactions=rules,
            diabetes_drugs=diabetes,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "allergy_classes": {k: list(v) for k, v in self.allergy_classes.items()},
            "interactions": [
                {"drugs": list(r.drugs), "severity": r.severity, "description": r.description}
                for r in self.interactions
            ],
            "diabetes_drugs": list(self.diabetes_drugs),
        }


_DEFAULT_TABLES: dict[str, Any] = {
    "allergy_classes": {
        # Penicillin class
        "penicillin": ["amoxicillin", "ampicillin", "penicillin", "augmentin", "piperacillin"],
        "amoxicillin": ["amoxicillin", "augmentin", "amoxyclav"],
        # Sulfa drugs
        "sulfa": ["sulfamethoxazole", "bactrim", "septra", "sulfasalazine"],
        "sulfamethoxazole": ["bactrim", "septra", "sulfamethoxazole"],
        # NSAIDs
        "aspirin": ["aspirin", "acetylsalicylic acid", "disprin", "ecosprin"],
        "ibuprofen": ["ibuprofen", "advil", "motrin", "brufen"],
        "nsaid": ["ibuprofen", "aspirin", "naproxen", "diclofenac", "indomethacin", "piroxicam"],
        # Opioids
        "codeine": ["codeine", "co-codamol"],
        "morphine": ["morphine", "oxycodone", "hydrocodone"],
        # Antibiotics
        "cephalosporin": ["cefixime", "ceftriaxone", "cephalexin", "cefuroxime"],
        "fluoroquinolone": ["ciprofloxacin", "levofloxacin", "moxifloxacin", "ofloxacin"],
        "macrolide": ["azithromycin", "erythromycin", "clarithromycin"],
        # Others
        "latex": ["latex"],
        "contrast": ["contrast", "iodine", "gadolinium"],
    },
    "interactions": [
        # Blood thinners
        {"drugs": ["warfarin", "aspirin"], "severity": "high",
         "description": "Increased bleeding risk. Monitor INR closely."},
        {"drugs": ["warfarin", "ibuprofen"], "severity": "high",
         "description": "NSAIDs increase bleeding risk with anticoagulants."},
        {"drugs": ["warfarin", "vitamin k"], "severity": "high",
         "description": "Vitamin K reduces warfarin effectiveness."},
        {"drugs": ["clopidogrel", "omeprazole"], "severity": "moderate",
         "description": "PPIs may reduce clopidogrel effectiveness."},
        # Blood pressure
        {"drugs": ["lisinopril", "potassium"], "severity": "high",
         "description": "Risk of hyperkalemia. Monitor potassium levels."},
        {"drugs": ["lisinopril", "spironolactone"], "severity": "high",
         "description": "Dual potassium-sparing effect. Monitor potassium."},
        {"drugs": ["metoprolol", "verapamil"], "severity": "high",
         "description": "Risk of severe bradycardia and heart block."},
        {"drugs": ["amlodipine", "simvastatin"], "severity": "moderate",
         "description": "Increased simvastatin levels. Limit dose to 20mg."},
        # Antibiotics
        {"drugs": ["metronidazole", "alcohol"], "severity": "high",
         "description": "Severe nausea, vomiting, flushing. Avoid alcohol."},
        {"drugs": ["ciprofloxacin", "tizanidine"], "severity": "high",
         "description": "Greatly increased tizanidine levels. Contraindicated."},
        {"drugs": ["azithromycin", "amiodarone"], "severity": "high",
         "description": "Risk of QT prolongation. ECG monitoring required."},
        {"drugs": ["erythromycin", "simvastatin"], "severity": "high",
         "description": "Risk of myopathy/rhabdomyolysis. Avoid combination."},
        # Diabetes
        {"drugs": ["metformin", "contrast dye"], "severity": "high",
         "description": "Risk of lactic acidosis. Hold metformin 48hrs post-contrast."},
        {"drugs": ["insulin", "beta blockers"], "severity": "moderate",
         "description": "May mask hypoglycemia symptoms. Monitor closely."},
        {"drugs": ["glipizide", "fluconazole"], "severity": "moderate",
         "description": "Increased hypoglycemia risk. Monitor blood glucose."},
        # Mental health
        {"drugs": ["sertraline", "tramadol"], "severity": "high",
         "description": "Risk of serotonin syndrome. Monitor for symptoms."},
        {"drugs": ["fluoxetine", "maois"], "severity": "high",
         "description": "Contraindicated. Wait 5 weeks before switching."},
        {"drugs": ["lithium", "ibuprofen"], "severity": "high",
         "description": "NSAIDs increase lithium levels. Monitor closely."},
        {"drugs": ["alprazolam", "opioids"], "severity": "high",
         "description": "Risk of respiratory depression. Avoid combination."},
        # Pain / opioids
        {"drugs": ["tramadol", "ssris"], "severity": "high",
         "description": "Risk of serotonin syndrome and seizures."},
        {"drugs": ["morphine", "benzodiazepines"], "severity": "high",
         "description": "Risk of profound sedation, respiratory depression."},
        # Statins
        {"drugs": ["simvastatin", "grapefruit"], "severity": "moderate",
         "description": "Grapefruit increases statin levels. Avoid large quantities."},
        {"drugs": ["atorvastatin", "clarithromycin"], "severity": "moderate",
         "description": "Increased statin exposure. Consider dose reduction."},
        # Other common
        {"drugs": ["digoxin", "amiodarone"], "severity": "high",
         "description": "Amiodarone increases digoxin levels. Reduce digoxin dose."},
        {"drugs": ["theophylline", "ciprofloxacin"], "severity": "high",
         "description": "Ciprofloxacin increases theophylline levels significantly."},
    ],
    "diabetes_drugs": ["metformin", "insulin", "glipizide", "glimepiride", "sitagliptin"],
}

DEFAULT_KNOWLEDGE_BASE = DrugKnowledgeBase.from_dict(_DEFAULT_TABLES)


def load_knowledge_base(path: str | Path) -> DrugKnowledgeBase:
    """Load knowledge tables from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    kb = DrugKnowledgeBase.from_dict(data)
    logger.info(
        "Loaded drug knowledge base from %s (%d allergy classes, %d interaction rules)",
        path, len(kb.allergy_classes), len(kb.interactions),
    )
    return kb


_kb: DrugKnowledgeBase | None = None


def get_knowledge_base() -> DrugKnowledgeBase:
    global _kb
    if _kb is None:
        _kb = load_knowledge_base(DRUG_KNOWLEDGE_BASE_PATH) if DRUG_KNOWLEDGE_BASE_PATH else DEFAULT_KNOWLEDGE_BASE
    return _kb
