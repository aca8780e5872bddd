import os
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from package_protections.governance import (
    ConfigurationError,
    EvaluationContext,
    PerFileViolation,
    ViolationType,
    get_offenses,
    rule_engine_yml,
    set_defaults,
    validate_repository,
)


app = FastAPI(
    title="Package Protections",
    description="Package-level dependency, privacy and visibility governance for modular monoliths",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- GLOBAL STATE ---
# One evaluation context per repository root, kept until /protections/bust-cache
contexts: Dict[str, EvaluationContext] = {}


def get_context(root: Optional[str] = None) -> EvaluationContext:
    key = os.path.abspath(root or os.getenv("PACKAGE_PROTECTIONS_ROOT") or os.getcwd())
    if key not in contexts:
        contexts[key] = EvaluationContext(root=key)
    return contexts[key]


# --- REQUEST MODELS ---

class NewViolationRequest(BaseModel):
    class_name: str
    filepath: str
    violation_type: str
    constant_source_package: str
    reference_source_package: str


class OffensesRequest(BaseModel):
    root: Optional[str] = None
    packages: Optional[List[str]] = None
    new_violations: List[NewViolationRequest] = []


class DefaultsRequest(BaseModel):
    root: Optional[str] = None
    packages: Optional[List[str]] = None
    protection_identifiers: Optional[List[str]] = None


def _select_packages(context: EvaluationContext, names: Optional[List[str]]):
    if names is None:
        return context.store.all()

    packages = []
    for name in names:
        package = context.store.get(name)
        if package is None:
            raise HTTPException(status_code=404, detail=f"No package named `{name}`")
        packages.append(package)
    return packages


def _to_violation(context: EvaluationContext, request: NewViolationRequest) -> PerFileViolation:
    reference_source_package = context.store.get(request.reference_source_package)
    if reference_source_package is None:
        raise HTTPException(
            status_code=404,
            detail=f"No package named `{request.reference_source_package}`"
        )
    if context.store.get(request.constant_source_package) is None:
        raise HTTPException(
            status_code=404,
            detail=f"No package named `{request.constant_source_package}`"
        )
    try:
        violation_type = ViolationType(request.violation_type)
    except ValueError:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown violation type {request.violation_type}. Expected one of {[t.value for t in ViolationType]}"
        )

    return PerFileViolation(
        class_name=request.class_name,
        filepath=request.filepath,
        violation_type=violation_type,
        constant_source_package=request.constant_source_package,
        reference_source_package=reference_source_package,
    )


# --- ENDPOINTS ---

@app.get("/")
def health_check():
    return {"status": "active", "system": "Package Protections"}


@app.get("/protections")
async def get_protections(
    root: Optional[str] = Query(None, description="Repository root")
):
    """
    Get the active protections.

    Returns each protection's identifier, name, description and default behavior.
    """
    try:
        configuration = get_context(root).configuration
        return {
            "protections": [
                {
                    "identifier": p.identifier,
                    "name": p.humanized_name,
                    "description": p.humanized_description,
                    "default_behavior": p.default_behavior.value,
                }
                for p in configuration.protections
            ],
            "globally_permitted_namespaces": configuration.globally_permitted_namespaces,
            "acceptable_parent_classes": configuration.acceptable_parent_classes,
        }
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get protections: {str(e)}")


@app.get("/protections/validate")
async def validate_protections(
    root: Optional[str] = Query(None, description="Repository root")
):
    """
    Validate the protection configuration of every package.

    Returns every problem found instead of failing on the first one.
    """
    try:
        result = validate_repository(context=get_context(root))
        return result.to_dict()
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Validation failed: {str(e)}")


@app.post("/protections/offenses")
async def post_offenses(request: OffensesRequest):
    """
    Evaluate protections.

    New violations are the ones introduced by the change under review;
    recorded violations are read from each package's ledger.
    """
    try:
        context = get_context(request.root)
        packages = _select_packages(context, request.packages)
        new_violations = [_to_violation(context, v) for v in request.new_violations]
        offenses = get_offenses(packages, new_violations, context=context)
        return {
            "total_offenses": len(offenses),
            "offenses": [o.to_dict() for o in offenses],
        }
    except HTTPException:
        raise
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get offenses: {str(e)}")


@app.get("/protections/rule-config")
async def get_rule_config(
    root: Optional[str] = Query(None, description="Repository root")
):
    """Get the lint-engine configuration for the rule-engine protections."""
    try:
        return {"yml": rule_engine_yml(context=get_context(root))}
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to render rule config: {str(e)}")


@app.post("/protections/defaults")
async def post_defaults(request: DefaultsRequest):
    """Pin unset protections to their default behavior in each `package.yml`."""
    try:
        context = get_context(request.root)
        packages = _select_packages(context, request.packages)
        written = set_defaults(
            packages,
            protection_identifiers=request.protection_identifiers,
            verbose=False,
            context=context,
        )
        return {"updated_packages": [p.name for p in written]}
    except HTTPException:
        raise
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to set defaults: {str(e)}")


@app.post("/protections/bust-cache")
async def post_bust_cache():
    """Forget every cached evaluation context."""
    contexts.clear()
    return {"status": "ok"}
