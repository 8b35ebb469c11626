"""IRI string constants of the vocabularies the parsers and serializers use."""

from __future__ import annotations

RDF_NS = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
RDFS_NS = "http://www.w3.org/2000/01/rdf-schema#"
XSD_NS = "http://www.w3.org/2001/XMLSchema#"
OWL_NS = "http://www.w3.org/2002/07/owl#"
XML_NS = "http://www.w3.org/XML/1998/namespace"

RDF_TYPE_IRI = f"{RDF_NS}type"
RDF_FIRST_IRI = f"{RDF_NS}first"
RDF_REST_IRI = f"{RDF_NS}rest"
RDF_NIL_IRI = f"{RDF_NS}nil"
RDF_LANG_STRING_IRI = f"{RDF_NS}langString"
RDF_XML_LITERAL_IRI = f"{RDF_NS}XMLLiteral"
RDF_STATEMENT_IRI = f"{RDF_NS}Statement"
RDF_SUBJECT_IRI = f"{RDF_NS}subject"
RDF_PREDICATE_IRI = f"{RDF_NS}predicate"
RDF_OBJECT_IRI = f"{RDF_NS}object"

XSD_STRING_IRI = f"{XSD_NS}string"
XSD_BOOLEAN_IRI = f"{XSD_NS}boolean"
XSD_INTEGER_IRI = f"{XSD_NS}integer"
XSD_DECIMAL_IRI = f"{XSD_NS}decimal"
XSD_DOUBLE_IRI = f"{XSD_NS}double"

KNOWN_PREFIXES = {
    RDF_NS: "rdf",
    RDFS_NS: "rdfs",
    XSD_NS: "xsd",
    OWL_NS: "owl",
}
