from pdfcontent.psexceptions import PSException


class PDFException(PSException):
    pass


class PDFTypeError(PDFException, TypeError):
    pass


class PDFValueError(PDFException, ValueError):
    pass


class PDFNotImplementedError(PDFException, NotImplementedError):
    pass
