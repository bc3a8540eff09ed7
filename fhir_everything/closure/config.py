"""Configuration constants for the FHIR $everything service."""

import os
from pathlib import Path

# Base paths
BASE_DIR = Path(os.getenv("FHIR_EVERYTHING_HOME", str(Path(__file__).parent.parent.parent)))
STORE_DIR = Path(os.getenv("FHIR_EVERYTHING_STORE_DIR", str(BASE_DIR / "data" / "store")))
LOG_DIR = BASE_DIR / "logs"
LOG_SESSIONS_KEEP = int(os.getenv("FHIR_EVERYTHING_LOG_SESSIONS_KEEP", "20"))

# Packaged data files
PACKAGE_DATA_DIR = Path(__file__).parent / "data"
COMPARTMENT_DEFINITION_PATH = PACKAGE_DATA_DIR / "compartment_patient_r4.json"
# Element paths indexed by the compartment search parameters
SEARCH_PARAMETERS_PATH = PACKAGE_DATA_DIR / "search_parameters_patient_r4.json"

# Information models
FHIR_R3 = "Fhir3.0"
FHIR_R4 = "Fhir4.0"

SUPPORTED_INFORMATION_MODELS = (FHIR_R3, FHIR_R4)
DEFAULT_INFORMATION_MODEL = FHIR_R4

# fhirVersion MIME parameter (major.minor) -> information model
FHIR_VERSIONS = {
    "3.0": FHIR_R3,
    "4.0": FHIR_R4,
}

# Published fhirVersion for each information model (CapabilityStatement)
FHIR_RELEASES = {
    FHIR_R3: "3.0.2",
    FHIR_R4: "4.0.1",
}

FHIR_JSON_MEDIA_TYPE = "application/fhir+json"

# Traversal modes
TRAVERSAL_CLOSURE = "closure"  # Follow outbound references recursively
TRAVERSAL_COMPARTMENT = "compartment"  # One level of reverse lookups
EVERYTHING_TRAVERSAL_MODE = os.getenv("FHIR_EVERYTHING_TRAVERSAL", TRAVERSAL_CLOSURE)

# Operation registration
EVERYTHING_OPERATION = "everything"
EVERYTHING_OPERATION_DEFINITION = "http://hl7.org/fhir/OperationDefinition/Patient-everything"
EVERYTHING_RESOURCE_TYPES = ("Patient",)
SUPPORTED_CUSTOM_OPERATIONS = {EVERYTHING_OPERATION}

# Reference handling
CONTAINED_REFERENCE_PREFIX = "#"

# Result bundle
BUNDLE_TYPE_SEARCHSET = "searchset"
BUNDLE_IDENTIFIER_SYSTEM = "urn:ietf:rfc:3986"

# OperationOutcome issue details
ISSUE_DETAILS_SYSTEM = "http://vonk.fire.ly/fhir/ValueSet/OperationOutcomeIssueDetails"

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# =============================================================================
# Resource types per information model
# =============================================================================

FHIR_R3_RESOURCE_TYPES = frozenset({
    "Account", "ActivityDefinition", "AdverseEvent", "AllergyIntolerance",
    "Appointment", "AppointmentResponse", "AuditEvent", "Basic", "Binary",
    "BodySite", "Bundle", "CapabilityStatement", "CarePlan", "CareTeam",
    "ChargeItem", "Claim", "ClaimResponse", "ClinicalImpression", "CodeSystem",
    "Communication", "CommunicationRequest", "CompartmentDefinition",
    "Composition", "ConceptMap", "Condition", "Consent", "Contract", "Coverage",
    "DataElement", "DetectedIssue", "Device", "DeviceComponent",
    "DeviceMetric", "DeviceRequest", "DeviceUseStatement", "DiagnosticReport",
    "DocumentManifest", "DocumentReference", "EligibilityRequest",
    "EligibilityResponse", "Encounter", "Endpoint", "EnrollmentRequest",
    "EnrollmentResponse", "EpisodeOfCare", "ExpansionProfile",
    "ExplanationOfBenefit", "FamilyMemberHistory", "Flag", "Goal",
    "GraphDefinition", "Group", "GuidanceResponse", "HealthcareService",
    "ImagingManifest", "ImagingStudy", "Immunization",
    "ImmunizationRecommendation", "ImplementationGuide", "Library", "Linkage",
    "List", "Location", "Measure", "MeasureReport", "Media", "Medication",
    "MedicationAdministration", "MedicationDispense", "MedicationRequest",
    "MedicationStatement", "MessageDefinition", "MessageHeader",
    "NamingSystem", "NutritionOrder", "Observation", "OperationDefinition",
    "OperationOutcome", "Organization", "Parameters", "Patient",
    "PaymentNotice", "PaymentReconciliation", "Person", "PlanDefinition",
    "Practitioner", "PractitionerRole", "Procedure", "ProcedureRequest",
    "ProcessRequest", "ProcessResponse", "Provenance", "Questionnaire",
    "QuestionnaireResponse", "ReferralRequest", "RelatedPerson",
    "RequestGroup", "ResearchStudy", "ResearchSubject", "RiskAssessment",
    "Schedule", "SearchParameter", "Sequence", "ServiceDefinition", "Slot",
    "Specimen", "StructureDefinition", "StructureMap", "Subscription",
    "Substance", "SupplyDelivery", "SupplyRequest", "Task", "TestReport",
    "TestScript", "ValueSet", "VisionPrescription",
})

FHIR_R4_RESOURCE_TYPES = frozenset({
    "Account", "ActivityDefinition", "AdverseEvent", "AllergyIntolerance",
    "Appointment", "AppointmentResponse", "AuditEvent", "Basic", "Binary",
    "BiologicallyDerivedProduct", "BodyStructure", "Bundle",
    "CapabilityStatement", "CarePlan", "CareTeam", "CatalogEntry",
    "ChargeItem", "ChargeItemDefinition", "Claim", "ClaimResponse",
    "ClinicalImpression", "CodeSystem", "Communication",
    "CommunicationRequest", "CompartmentDefinition", "Composition",
    "ConceptMap", "Condition", "Consent", "Contract", "Coverage",
    "CoverageEligibilityRequest", "CoverageEligibilityResponse",
    "DetectedIssue", "Device", "DeviceDefinition", "DeviceMetric",
    "DeviceRequest", "DeviceUseStatement", "DiagnosticReport",
    "DocumentManifest", "DocumentReference", "EffectEvidenceSynthesis",
    "Encounter", "Endpoint", "EnrollmentRequest", "EnrollmentResponse",
    "EpisodeOfCare", "EventDefinition", "Evidence", "EvidenceVariable",
    "ExampleScenario", "ExplanationOfBenefit", "FamilyMemberHistory", "Flag",
    "Goal", "GraphDefinition", "Group", "GuidanceResponse",
    "HealthcareService", "ImagingStudy", "Immunization",
    "ImmunizationEvaluation", "ImmunizationRecommendation",
    "ImplementationGuide", "InsurancePlan", "Invoice", "Library", "Linkage",
    "List", "Location", "Measure", "MeasureReport", "Media", "Medication",
    "MedicationAdministration", "MedicationDispense", "MedicationKnowledge",
    "MedicationRequest", "MedicationStatement", "MedicinalProduct",
    "MedicinalProductAuthorization", "MedicinalProductContraindication",
    "MedicinalProductIndication", "MedicinalProductIngredient",
    "MedicinalProductInteraction", "MedicinalProductManufactured",
    "MedicinalProductPackaged", "MedicinalProductPharmaceutical",
    "MedicinalProductUndesirableEffect", "MessageDefinition", "MessageHeader",
    "MolecularSequence", "NamingSystem", "NutritionOrder", "Observation",
    "ObservationDefinition", "OperationDefinition", "OperationOutcome",
    "Organization", "OrganizationAffiliation", "Parameters", "Patient",
    "PaymentNotice", "PaymentReconciliation", "Person", "PlanDefinition",
    "Practitioner", "PractitionerRole", "Procedure", "Provenance",
    "Questionnaire", "QuestionnaireResponse", "RelatedPerson", "RequestGroup",
    "ResearchDefinition", "ResearchElementDefinition", "ResearchStudy",
    "ResearchSubject", "RiskAssessment", "RiskEvidenceSynthesis", "Schedule",
    "SearchParameter", "ServiceRequest", "Slot", "Specimen",
    "SpecimenDefinition", "StructureDefinition", "StructureMap",
    "Subscription", "Substance", "SubstanceNucleicAcid", "SubstancePolymer",
    "SubstanceProtein", "SubstanceReferenceInformation",
    "SubstanceSourceMaterial", "SubstanceSpecification", "SupplyDelivery",
    "SupplyRequest", "Task", "TerminologyCapabilities", "TestReport",
    "TestScript", "ValueSet", "VerificationResult", "VisionPrescription",
})

RESOURCE_TYPES = {
    FHIR_R3: FHIR_R3_RESOURCE_TYPES,
    FHIR_R4: FHIR_R4_RESOURCE_TYPES,
}
